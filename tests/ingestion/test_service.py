"""
Tests for ingestion orchestration.

The Apify client is a MagicMock; the store is the real Django store.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest

from fanpulse.core.dto import IngestRequest
from fanpulse.core.enums import ScrapeStatus
from fanpulse.core.models import ContentItem, FandomPlatform, GoogleTrend, ScrapeRun
from fanpulse.core.guardrails import ApifyDisabledError
from fanpulse.ingestion.service import (
    ingest_dataset,
    ingest_raw_items,
    run_actor_for_fandom,
    scrape_fandoms,
)
from fanpulse.integrations.apify import ApifyError, RunInfo


@pytest.fixture
def fandom(make_fandom):
    return make_fandom("BINI Blooms", platforms=["tiktok"])


def client_returning(items):
    client = MagicMock()
    client.fetch_all_dataset_items.return_value = items
    return client


def tiktok_request(fandom, dataset="ds-1"):
    return IngestRequest(
        dataset_handle=dataset,
        fandom_id=fandom.id,
        platform="tiktok",
        source_job_id="menoob/pldt-tiktok-scraper",
    )


@pytest.mark.django_db
class TestIngestDataset:
    """One dataset in, one audited ScrapeRun out."""

    def test_success_records_item_count(self, fandom):
        client = client_returning([
            {"id": "v1", "diggCount": 10},
            {"id": "v1", "diggCount": 25},
            {"id": "v2", "diggCount": 5},
        ])

        result = ingest_dataset(tiktok_request(fandom), client=client)

        assert result.success is True
        assert result.items_count == 2
        run = ScrapeRun.objects.get(dataset_id="ds-1")
        assert run.status == ScrapeStatus.SUCCEEDED
        assert run.items_count == 2
        assert run.fandom_id == fandom.id
        assert ContentItem.objects.count() == 2

    def test_fetch_failure_marks_run_failed(self, fandom):
        client = MagicMock()
        client.fetch_all_dataset_items.side_effect = ApifyError("HTTP 500", status_code=500)

        result = ingest_dataset(tiktok_request(fandom), client=client)

        assert result.success is False
        assert "HTTP 500" in result.error
        assert isinstance(result.cause, ApifyError)
        run = ScrapeRun.objects.get(dataset_id="ds-1")
        assert run.status == ScrapeStatus.FAILED
        assert run.items_count == 0
        assert run.error_message == "HTTP 500"
        assert ContentItem.objects.count() == 0

    def test_disabled_apify_fails_run(self, fandom):
        """No client given and Apify disabled: a failed run, not an exception."""
        result = ingest_dataset(tiktok_request(fandom))

        assert result.success is False
        assert ScrapeRun.objects.get(dataset_id="ds-1").status == ScrapeStatus.FAILED

    def test_replay_keeps_first_outcome(self, fandom):
        """A finished run never changes; the replayed items still upsert."""
        ingest_dataset(tiktok_request(fandom), client=client_returning([{"id": "v1", "diggCount": 1}]))
        replay = ingest_dataset(
            tiktok_request(fandom),
            client=client_returning([{"id": "v1", "diggCount": 9}, {"id": "v2"}]),
        )

        assert replay.success is True
        run = ScrapeRun.objects.get(dataset_id="ds-1")
        assert run.status == ScrapeStatus.SUCCEEDED
        assert run.items_count == 1
        assert ContentItem.objects.get(external_id="v1").likes == 9
        assert ScrapeRun.objects.count() == 1

    def test_fetch_limit_from_settings(self, fandom, settings):
        settings.APIFY_DATASET_FETCH_LIMIT = 50
        client = client_returning([])

        ingest_dataset(tiktok_request(fandom), client=client)

        client.fetch_all_dataset_items.assert_called_once_with("ds-1", max_items=50)

    def test_trends_dataset(self, fandom):
        """Trends datasets need no fandom; keywords are matched to fandoms."""
        client = client_returning([
            {
                "searchTerm": "BINI",
                "interestOverTime": [
                    {"date": "Jan 5, 2025", "value": [40]},
                    {"date": "Jan 12, 2025", "value": [85]},
                ],
            }
        ])
        request = IngestRequest(dataset_handle="ds-trends", source_job_id="google_trends")

        result = ingest_dataset(request, client=client)

        assert result.success is True
        assert result.items_count == 2
        rows = GoogleTrend.objects.filter(fandom=fandom).order_by("date")
        assert [(r.date, r.interest_value, r.region) for r in rows] == [
            (date(2025, 1, 5), 40, "PH"),
            (date(2025, 1, 12), 85, "PH"),
        ]
        assert ScrapeRun.objects.get(dataset_id="ds-trends").items_count == 2


@pytest.mark.django_db
class TestIngestRawItems:

    def test_empty_batch(self):
        result = ingest_raw_items([], None, None)
        assert result.success is True
        assert result.items_count == 0
        assert result.discoveries == []

    def test_content_batch_requires_target(self, db):
        with pytest.raises(ValueError):
            ingest_raw_items([{"id": "v1"}], None, "tiktok")

    def test_content_batch(self, fandom):
        result = ingest_raw_items([{"id": "v1"}, {"id": "v2"}], fandom.id, "tiktok", "push")
        assert result.items_count == 2
        assert ScrapeRun.objects.count() == 0

    def test_trends_batch(self, fandom):
        raw = [{"keyword": "BINI Blooms", "timelineData": [{"time": "2025-02-01", "value": 77}]}]
        result = ingest_raw_items(raw, None, None, "google_trends")
        assert result.items_count == 1
        assert GoogleTrend.objects.get().interest_value == 77


@pytest.mark.django_db
class TestRunActorForFandom:

    def test_starts_actor_and_records_pending_run(self, fandom):
        client = MagicMock()
        client.start_actor_run.return_value = RunInfo(
            run_id="run-1",
            actor_id="menoob/pldt-tiktok-scraper",
            status="READY",
            dataset_id="ds-42",
            started_at=None,
            finished_at=None,
        )
        fandom_platform = FandomPlatform.objects.get(fandom=fandom, platform="tiktok")

        run = run_actor_for_fandom(fandom_platform, client)

        actor_id, input_json = client.start_actor_run.call_args[0]
        assert actor_id == "menoob/pldt-tiktok-scraper"
        assert isinstance(input_json, dict)
        assert run.dataset_id == "ds-42"
        assert run.status == ScrapeStatus.PENDING
        assert run.platform == "tiktok"
        assert run.fandom_id == fandom.id

    def test_unregistered_platform(self, fandom):
        unknown = MagicMock(platform="myspace", handle="bini", fandom_id=fandom.id)
        with pytest.raises(KeyError):
            run_actor_for_fandom(unknown, MagicMock())


def starting_client(failing_actor=None):
    """Client whose actor runs start, except failing_actor's."""
    client = MagicMock()

    def start(actor_id, input_json):
        if actor_id == failing_actor:
            raise ApifyError("HTTP 502", status_code=502)
        return RunInfo(
            run_id=f"run-{client.start_actor_run.call_count}",
            actor_id=actor_id,
            status="READY",
            dataset_id=f"ds-{client.start_actor_run.call_count}",
            started_at=None,
            finished_at=None,
        )

    client.start_actor_run.side_effect = start
    return client


@pytest.mark.django_db
class TestScrapeFandoms:
    """Sweep over every tracked fandom platform."""

    def test_one_failure_does_not_stop_sweep(self, make_fandom):
        bini = make_fandom("BINI Blooms", platforms=["tiktok", "youtube"])
        make_fandom("SB19 A'TIN", platforms=["tiktok"])

        result = scrape_fandoms(starting_client(failing_actor="menoob/pldt-youtube-scraper"))

        assert len(result.started) == 2
        assert [(f.fandom_id, f.platform) for f in result.failures] == [(bini.id, "youtube")]
        assert "HTTP 502" in result.failures[0].error
        assert ScrapeRun.objects.filter(status=ScrapeStatus.PENDING).count() == 2

    def test_platform_filter(self, make_fandom):
        make_fandom("BINI Blooms", platforms=["tiktok", "youtube"])
        client = starting_client()

        result = scrape_fandoms(client, platform="youtube")

        assert len(result.started) == 1
        assert ScrapeRun.objects.get().platform == "youtube"

    def test_fandom_filter(self, make_fandom):
        make_fandom("BINI Blooms", platforms=["tiktok"])
        sb19 = make_fandom("SB19 A'TIN", platforms=["tiktok"])

        result = scrape_fandoms(starting_client(), fandom_id=str(sb19.id))

        assert len(result.started) == 1
        assert ScrapeRun.objects.get().fandom_id == sb19.id

    def test_unregistered_platform_skipped(self, make_fandom):
        fandom = make_fandom("BINI Blooms", platforms=["tiktok"])
        FandomPlatform.objects.create(fandom=fandom, platform="myspace", handle="bini")

        result = scrape_fandoms(starting_client())

        assert result.skipped == 1
        assert len(result.started) == 1
        assert result.failures == []

    def test_disabled_apify_aborts(self, make_fandom):
        make_fandom("BINI Blooms", platforms=["tiktok"])
        client = MagicMock()
        client.start_actor_run.side_effect = ApifyDisabledError()

        with pytest.raises(ApifyDisabledError):
            scrape_fandoms(client)
