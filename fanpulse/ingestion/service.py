"""
Ingestion orchestration.

Entry points:
- ingest_dataset(): fetch one scraper dataset and ingest it, audited as a ScrapeRun
- ingest_raw_items(): ingest a pushed batch (no fetch, no run bookkeeping)
- run_actor_for_fandom(): start a scrape for one fandom platform
- scrape_fandoms(): start scrapes for every tracked fandom platform

ScrapeRun lifecycle: pending -> running -> succeeded | failed. Once a run
is terminal the store rejects further writes; a late outcome write is
logged and dropped, never applied.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from django.conf import settings

from fanpulse.actors.registry import build_actor_input, get_actor_spec, is_trends_source
from fanpulse.core.dto import IngestRequest, IngestResult, ScrapeFailure, ScrapeSweepResult
from fanpulse.core.enums import ScrapeStatus
from fanpulse.core.errors import (
    PersistenceError,
    ScrapeRunTransitionError,
    TransientNetworkError,
)
from fanpulse.core.guardrails import ApifyDisabledError
from fanpulse.core.store import DjangoFandomStore, FandomStore
from fanpulse.ingestion.trends import ingest_google_trends
from fanpulse.integrations.apify import ApifyClient
from fanpulse.normalization.service import normalize_dataset

if TYPE_CHECKING:
    from fanpulse.core.models import FandomPlatform, ScrapeRun

logger = logging.getLogger(__name__)


def _dataset_fetch_limit() -> int:
    return getattr(settings, "APIFY_DATASET_FETCH_LIMIT", 1000)


def _record_outcome(
    store: FandomStore,
    run: "ScrapeRun",
    status: str,
    items_count: int,
    error_message: str = "",
) -> None:
    try:
        store.set_scrape_run_status(
            run.id, status, items_count=items_count, error_message=error_message
        )
    except ScrapeRunTransitionError as e:
        logger.warning("Scrape run outcome dropped: %s", e)
    except PersistenceError as e:
        logger.error("Scrape run outcome not recorded: run=%s error=%s", run.id, e)


def ingest_dataset(
    request: IngestRequest,
    *,
    client: ApifyClient | None = None,
    store: FandomStore | None = None,
) -> IngestResult:
    """
    Fetch a dataset and ingest it.

    Steps:
    1. Get or create the ScrapeRun for the dataset, move it to running
    2. Fetch every item (up to APIFY_DATASET_FETCH_LIMIT)
    3. Trends sources write GoogleTrend rows, everything else is normalized
    4. Record succeeded with the item count, or failed with zero items

    Fetch failures never raise; they come back as an unsuccessful result.
    """
    store = store or DjangoFandomStore()
    dataset_id = request.dataset_handle
    start_time = time.monotonic()

    try:
        run = store.get_or_create_scrape_run(
            dataset_id,
            actor_id=request.source_job_id,
            fandom_id=request.fandom_id,
            platform=request.platform or "",
        )
    except PersistenceError as e:
        logger.error("Could not open scrape run: dataset=%s error=%s", dataset_id, e)
        return IngestResult.failed(str(e), cause=e)

    try:
        store.set_scrape_run_status(run.id, ScrapeStatus.RUNNING)
    except ScrapeRunTransitionError as e:
        # Replays of a finished dataset are still ingested (upserts are idempotent)
        logger.info("Scrape run not moved to running: %s", e)

    logger.info(
        "INGEST_START dataset=%s source=%s fandom=%s platform=%s",
        dataset_id,
        request.source_job_id,
        request.fandom_id,
        request.platform,
    )

    try:
        client = client or ApifyClient.from_settings()
        raw_items = client.fetch_all_dataset_items(dataset_id, max_items=_dataset_fetch_limit())
    except (TransientNetworkError, ApifyDisabledError, ValueError) as e:
        # ValueError: no APIFY_TOKEN configured
        logger.error("Dataset fetch failed: dataset=%s error=%s", dataset_id, e)
        _record_outcome(store, run, ScrapeStatus.FAILED, 0, str(e))
        return IngestResult.failed(str(e), cause=e)

    if request.is_trends:
        try:
            rows = ingest_google_trends(raw_items, request.fandom_id, store)
            result = IngestResult(success=True, items_count=rows)
        except PersistenceError as e:
            result = IngestResult.failed(str(e), cause=e)
    else:
        result = normalize_dataset(
            raw_items,
            request.fandom_id,
            request.platform,
            request.source_job_id,
            store=store,
        )

    if result.success:
        _record_outcome(store, run, ScrapeStatus.SUCCEEDED, result.items_count)
    else:
        _record_outcome(store, run, ScrapeStatus.FAILED, 0, result.error or "")

    duration_ms = (time.monotonic() - start_time) * 1000
    logger.info(
        "INGEST_END dataset=%s success=%s items=%d influencers=%d discoveries=%d duration_ms=%.1f",
        dataset_id,
        result.success,
        result.items_count,
        result.influencer_count,
        len(result.discoveries),
        duration_ms,
    )
    return result


def ingest_raw_items(
    raw_items: list[Any],
    fandom_id,
    platform: str | None,
    source: str = "",
    *,
    store: FandomStore | None = None,
) -> IngestResult:
    """
    Ingest records pushed directly by a scraper.

    Trends sources write GoogleTrend rows; other sources need fandom_id and
    platform. An empty batch succeeds with zero counts.
    """
    if not raw_items:
        return IngestResult(success=True)

    store = store or DjangoFandomStore()
    if is_trends_source(source):
        try:
            rows = ingest_google_trends(raw_items, fandom_id, store)
        except PersistenceError as e:
            return IngestResult.failed(str(e), cause=e)
        return IngestResult(success=True, items_count=rows)

    if fandom_id is None or not platform:
        raise ValueError("fandom_id and platform are required for content batches")
    return normalize_dataset(raw_items, fandom_id, platform, source, store=store)


def run_actor_for_fandom(
    fandom_platform: "FandomPlatform",
    client: ApifyClient,
    store: FandomStore | None = None,
    keyword: str | None = None,
) -> "ScrapeRun":
    """
    Start the platform's scraper for one fandom and record a pending ScrapeRun.

    The run is keyed by the actor run's dataset id so ingest_dataset picks
    it up when the dataset is ready.

    Raises:
        KeyError: If the platform has no registered actor
        ApifyDisabledError: If APIFY_ENABLED=false
        ApifyError: If the actor could not be started
    """
    store = store or DjangoFandomStore()
    spec = get_actor_spec(fandom_platform.platform)
    if spec is None:
        raise KeyError(f"No actor registered for platform: {fandom_platform.platform}")

    input_json = build_actor_input(spec.source, fandom_platform.handle, keyword=keyword)
    run_info = client.start_actor_run(spec.actor_id, input_json)

    run = store.get_or_create_scrape_run(
        run_info.dataset_id or run_info.run_id,
        actor_id=spec.actor_id,
        fandom_id=fandom_platform.fandom_id,
        platform=fandom_platform.platform,
    )
    logger.info(
        "Scrape started: fandom=%s platform=%s actor=%s dataset=%s",
        fandom_platform.fandom_id,
        fandom_platform.platform,
        spec.actor_id,
        run.dataset_id,
    )
    return run


def scrape_fandoms(
    client: ApifyClient,
    store: FandomStore | None = None,
    *,
    platform: str | None = None,
    fandom_id=None,
) -> ScrapeSweepResult:
    """
    Start scrapers for every tracked fandom platform.

    One platform failing to start is recorded and the sweep moves on.
    Platforms without a registered scraper are skipped.

    Raises:
        ApifyDisabledError: If APIFY_ENABLED=false
        PersistenceError: If the fandom platforms cannot be listed
    """
    store = store or DjangoFandomStore()
    targets = store.list_fandom_platforms(platform)
    if fandom_id is not None:
        targets = [fp for fp in targets if str(fp.fandom_id) == str(fandom_id)]

    result = ScrapeSweepResult()
    for fandom_platform in targets:
        try:
            run = run_actor_for_fandom(fandom_platform, client, store)
        except KeyError:
            result.skipped += 1
            continue
        except (TransientNetworkError, PersistenceError) as e:
            logger.error(
                "Scrape start failed: fandom=%s platform=%s error=%s",
                fandom_platform.fandom_id,
                fandom_platform.platform,
                e,
            )
            result.failures.append(ScrapeFailure(
                fandom_id=fandom_platform.fandom_id,
                platform=fandom_platform.platform,
                error=str(e),
            ))
            continue
        result.started.append(run.dataset_id)

    logger.info(
        "Scrape sweep complete: targets=%d started=%d failed=%d skipped=%d",
        len(targets),
        len(result.started),
        len(result.failures),
        result.skipped,
    )
    return result
