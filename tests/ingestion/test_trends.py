"""
Tests for Google Trends ingestion.
"""

from datetime import date
from types import SimpleNamespace

import pytest

from fanpulse.core.models import GoogleTrend
from fanpulse.ingestion.trends import (
    collect_regional_trends,
    extract_artist_name,
    ingest_google_trends,
    parse_trends_date,
    search_terms_for,
)
from fanpulse.integrations.google_trends import RegionalInterest, RegionalTrendResult


@pytest.mark.unit
class TestParseTrendsDate:

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("2025-03-01", date(2025, 3, 1)),
            ("2025-03-01T00:00:00Z", date(2025, 3, 1)),
            ("Jan 5, 2025", date(2025, 1, 5)),
            ("Jan 5 – 11, 2025", date(2025, 1, 5)),
            ("Dec 29 - 4, 2025", date(2025, 12, 29)),
            ("Mar 2025", date(2025, 3, 1)),
        ],
    )
    def test_formats(self, label, expected):
        assert parse_trends_date(label) == expected

    @pytest.mark.parametrize("label", ["", "yesterday", "Feb 30, 2025", "Foo 5, 2025"])
    def test_unparseable(self, label):
        assert parse_trends_date(label) is None


@pytest.mark.unit
class TestArtistName:

    @pytest.mark.parametrize(
        "name, group, artist",
        [
            ("BTS ARMY", "", "BTS"),
            ("SB19 A'TIN", "", "SB19"),
            ("BINI Blooms", "", "BINI"),
            ("Swifties", "", "Swifties"),
            ("Kathniel Shippers", "", "Kathniel"),
            ("Blooms", "BINI", "BINI"),
        ],
    )
    def test_extract(self, name, group, artist):
        fandom = SimpleNamespace(name=name, fandom_group=group)
        assert extract_artist_name(fandom) == artist

    def test_search_terms_skip_duplicate_artist(self):
        fandoms = [
            SimpleNamespace(id=1, name="BINI Blooms", fandom_group=""),
            SimpleNamespace(id=2, name="Swifties", fandom_group=""),
        ]
        assert search_terms_for(fandoms) == [
            (1, "BINI Blooms"),
            (1, "BINI"),
            (2, "Swifties"),
        ]


@pytest.mark.django_db
class TestIngestGoogleTrends:

    def test_explicit_fandom(self, store, make_fandom):
        fandom = make_fandom("BINI Blooms")
        raw = [{
            "searchTerm": "anything",
            "interestOverTime": [
                {"date": "Jan 5, 2025", "value": [140]},
                {"date": "not a date", "value": [10]},
                {"date": "Jan 12, 2025", "value": "n/a"},
            ],
        }]

        written = ingest_google_trends(raw, fandom.id, store)

        assert written == 2
        values = dict(GoogleTrend.objects.values_list("date", "interest_value"))
        assert values == {date(2025, 1, 5): 100, date(2025, 1, 12): 0}

    def test_keyword_matching(self, store, make_fandom):
        bini = make_fandom("BINI Blooms")
        sb19 = make_fandom("SB19 A'TIN")
        raw = [
            {"searchTerm": "bini philippines", "interestOverTime": [{"date": "2025-01-05", "value": [5]}]},
            {"searchTerm": "SB19", "interestOverTime": [{"date": "2025-01-05", "value": [7]}]},
            {"searchTerm": "Taylor Swift", "interestOverTime": [{"date": "2025-01-05", "value": [9]}]},
            "junk",
            {"interestOverTime": []},
        ]

        written = ingest_google_trends(raw, None, store)

        assert written == 2
        assert GoogleTrend.objects.get(fandom=bini).interest_value == 5
        assert GoogleTrend.objects.get(fandom=sb19).interest_value == 7

    def test_reingest_overwrites(self, store, make_fandom):
        fandom = make_fandom("BINI Blooms")
        point = lambda v: [{"searchTerm": "BINI", "interestOverTime": [{"date": "2025-01-05", "value": [v]}]}]  # noqa: E731

        ingest_google_trends(point(10), fandom.id, store)
        ingest_google_trends(point(60), fandom.id, store)

        assert GoogleTrend.objects.get().interest_value == 60


class FakeRegionalClient:
    def __init__(self, results):
        self.results = results
        self.calls = []

    def fetch_regional_interest_batch(self, keywords, geo="PH", time_range="today 3-m"):
        self.calls.append(list(keywords))
        return [self.results[k] for k in keywords]


def regional(keyword, *regions, error=None):
    return RegionalTrendResult(
        keyword=keyword,
        geo="PH",
        time_range="today 3-m",
        regions=[
            RegionalInterest(region_code=code, region_name=code, interest_value=value)
            for code, value in regions
        ],
        error=error,
    )


@pytest.mark.django_db
class TestCollectRegionalTrends:

    def test_rows_per_region_failures_skipped(self, store, make_fandom):
        fandom = make_fandom("BINI Blooms")
        client = FakeRegionalClient({
            "BINI Blooms": regional("BINI Blooms", error="HTTP 429"),
            "BINI": regional("BINI", ("PH-00", 100), ("PH-07", 42)),
        })

        written = collect_regional_trends([fandom], client, store, today=date(2025, 3, 10))

        assert client.calls == [["BINI Blooms", "BINI"]]
        assert written == 2
        rows = dict(GoogleTrend.objects.filter(fandom=fandom).values_list("region", "interest_value"))
        assert rows == {"PH-00": 100, "PH-07": 42}
        assert set(GoogleTrend.objects.values_list("date", flat=True)) == {date(2025, 3, 10)}
        assert set(GoogleTrend.objects.values_list("keyword", flat=True)) == {"BINI"}

    def test_no_fandoms(self, store):
        client = FakeRegionalClient({})
        assert collect_regional_trends([], client, store) == 0
        assert client.calls == []
