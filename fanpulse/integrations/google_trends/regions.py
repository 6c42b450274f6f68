"""Philippine administrative regions as reported by the trends geo map."""

PH_REGIONS: list[tuple[str, str]] = [
    ("PH-NCR", "National Capital Region"),
    ("PH-CAL", "Calabarzon"),
    ("PH-CEN", "Central Luzon"),
    ("PH-07", "Central Visayas"),
    ("PH-11", "Davao Region"),
    ("PH-03", "Ilocos Region"),
    ("PH-10", "Northern Mindanao"),
    ("PH-05", "Bicol Region"),
    ("PH-06", "Western Visayas"),
    ("PH-08", "Eastern Visayas"),
    ("PH-02", "Cagayan Valley"),
    ("PH-09", "Zamboanga Peninsula"),
    ("PH-12", "Soccsksargen"),
    ("PH-CAR", "Cordillera"),
    ("PH-13", "Caraga"),
    ("PH-14", "ARMM"),
]

PH_REGION_NAMES: dict[str, str] = dict(PH_REGIONS)


def region_name(code: str) -> str:
    """Display name for a region code, falling back to the code itself."""
    return PH_REGION_NAMES.get(code, code)
