"""
Google Trends ingestion.

Two paths write GoogleTrend rows:
- ingest_google_trends(): interest-over-time datasets from the trends
  scraper, national (region PH), one row per timeline point
- collect_regional_trends(): regional breakdown fetched live through the
  RegionalInterestClient, one row per region code dated today
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import TYPE_CHECKING, Any, Iterable

from django.utils import timezone

from fanpulse.core.store import FandomStore

if TYPE_CHECKING:
    from fanpulse.core.models import Fandom
    from fanpulse.integrations.google_trends import RegionalInterestClient

logger = logging.getLogger(__name__)

NATIONAL_REGION = "PH"

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
# "Jan 5, 2025" and week ranges "Jan 5 – 11, 2025" (first day wins)
_DAY_DATE_RE = re.compile(r"([A-Za-z]{3})\s+(\d{1,2})(?:\s*[–-]\s*\d{1,2})?,?\s*(\d{4})")
_MONTH_DATE_RE = re.compile(r"([A-Za-z]{3})\s+(\d{4})")

# Fandom name suffixes that follow the artist name ("BINI Blooms")
FANDOM_SUFFIXES = (
    " ARMY",
    " A'TIN",
    " Blooms",
    " CARAT",
    " BLINK",
    " ONCE",
    " Fans",
    " Nation",
    " Squad",
    " Stans",
)


def parse_trends_date(value: str) -> date | None:
    """Parse the date labels the trends scraper emits. None when unparseable."""
    if not value:
        return None
    value = value.strip()

    try:
        match = _ISO_DATE_RE.match(value)
        if match:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

        match = _DAY_DATE_RE.search(value)
        if match:
            month = MONTHS.get(match.group(1).lower())
            if month:
                return date(int(match.group(3)), month, int(match.group(2)))

        match = _MONTH_DATE_RE.search(value)
        if match:
            month = MONTHS.get(match.group(1).lower())
            if month:
                return date(int(match.group(2)), month, 1)
    except ValueError:
        # Day out of range for the month
        return None

    return None


def _point_value(point: dict[str, Any]) -> int:
    value = point.get("value")
    if isinstance(value, list):
        value = value[0] if value else 0
    try:
        return max(0, min(100, int(value or 0)))
    except (TypeError, ValueError):
        return 0


def ingest_google_trends(
    raw_items: list[dict[str, Any]],
    fandom_id,
    store: FandomStore,
) -> int:
    """
    Write interest-over-time points as GoogleTrend rows.

    Each item carries its own search term. Without fandom_id the fandom is
    matched from the term; items that match nothing are skipped.

    Returns the number of rows written.
    """
    written = 0
    for index, item in enumerate(raw_items):
        if not isinstance(item, dict):
            logger.warning("Skipping trends record at index %d: not an object", index)
            continue

        keyword = str(item.get("searchTerm") or item.get("keyword") or "").strip()
        timeline = item.get("interestOverTime") or item.get("timelineData") or []
        if not keyword:
            logger.warning("Skipping trends record at index %d: no search term", index)
            continue

        target_id = fandom_id
        if target_id is None:
            fandom = store.find_fandom_by_keyword(keyword)
            if fandom is None:
                logger.info("No fandom matches trends keyword: %s", keyword)
                continue
            target_id = fandom.id

        for point in timeline:
            if not isinstance(point, dict):
                continue
            trend_date = parse_trends_date(str(point.get("date") or point.get("time") or ""))
            if trend_date is None:
                continue
            store.upsert_google_trend(
                target_id, keyword, trend_date, NATIONAL_REGION, _point_value(point)
            )
            written += 1

    logger.info(
        "Trends dataset ingested",
        extra={"records": len(raw_items), "rows": written},
    )
    return written


def extract_artist_name(fandom: "Fandom") -> str:
    """
    Artist or group behind a fandom.

    "BTS ARMY" -> "BTS", "SB19 A'TIN" -> "SB19". Uses fandom_group when set,
    otherwise strips a known suffix, otherwise takes the first word.
    """
    if fandom.fandom_group:
        return fandom.fandom_group
    name = fandom.name
    for suffix in FANDOM_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)].strip()
    words = name.split()
    if len(words) > 1:
        return words[0]
    return name


def search_terms_for(fandoms: Iterable["Fandom"]) -> list[tuple[Any, str]]:
    """(fandom_id, keyword) pairs: the fandom name, then its artist name if different."""
    terms = []
    for fandom in fandoms:
        terms.append((fandom.id, fandom.name))
        artist = extract_artist_name(fandom)
        if artist and artist != fandom.name:
            terms.append((fandom.id, artist))
    return terms


def collect_regional_trends(
    fandoms: Iterable["Fandom"],
    client: "RegionalInterestClient",
    store: FandomStore,
    today: date | None = None,
) -> int:
    """
    Fetch regional interest for each fandom and its artist, store one row per region.

    Keywords run as a single sequential batch. Failed keywords are logged
    and skipped. Returns the number of rows written.
    """
    terms = search_terms_for(fandoms)
    if not terms:
        return 0
    today = today or timezone.localdate()

    results = client.fetch_regional_interest_batch([keyword for _, keyword in terms])

    written = 0
    for (fandom_id, keyword), result in zip(terms, results):
        if not result.ok or not result.regions:
            logger.info(
                "No regional data: keyword=%s error=%s",
                keyword,
                result.error or "empty",
            )
            continue
        for region in result.regions:
            store.upsert_google_trend(
                fandom_id, keyword, today, region.region_code, region.interest_value
            )
            written += 1
        logger.info("Regional data stored: keyword=%s regions=%d", keyword, len(result.regions))

    logger.info(
        "Regional trends collected",
        extra={"keywords": len(terms), "rows": written},
    )
    return written
