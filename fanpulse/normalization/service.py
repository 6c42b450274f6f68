"""
Dataset normalization service.

Main entrypoint: normalize_dataset(raw_items, fandom_id, platform, source_job_id)

Responsibilities:
1. Resolve each raw record through its platform's RecordShape
   (malformed records are logged and skipped)
2. Collapse duplicates by external id (later values win, an earlier
   published_at survives a later record that lacks one)
3. Resolve the current follower count (dataset profile, else stored
   FandomPlatform, else 0) and refresh the stored count
4. Upsert content items, back-fill earlier dates' engagement rollups,
   replace the scrape date's snapshot (followers and growth), upsert
   influencers, all in one store transaction
5. Scan the batch for untracked fandom candidates

Persistence failures never escape: the result comes back with
success=False, the message in error and the exception in cause. The
caller marks the originating scrape run failed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from django.utils import timezone

from fanpulse.core.dto import IngestResult
from fanpulse.core.errors import MalformedInputError, PersistenceError
from fanpulse.core.store import DjangoFandomStore, FandomStore
from fanpulse.discovery.miner import MinerConfig
from fanpulse.discovery.service import scan_batch
from fanpulse.normalization.adapters import (
    NormalizedRecord,
    get_record_shape,
    normalize_record,
)
from fanpulse.normalization.influencers import RelevanceWeights, extract_influencers
from fanpulse.normalization.metrics import (
    DailyRollup,
    growth_rate,
    rollup_by_date,
    scrape_date,
    snapshot_fields,
)

logger = logging.getLogger(__name__)


def resolve_records(
    raw_items: list[Any],
    platform: str,
    *,
    now: datetime | None = None,
) -> tuple[list[NormalizedRecord], int]:
    """
    Normalize raw records and collapse duplicate external ids.

    Returns (records in first-seen order, skipped count).
    """
    by_external_id: dict[str, NormalizedRecord] = {}
    skipped = 0

    for index, raw in enumerate(raw_items):
        try:
            record = normalize_record(platform, raw, now=now)
        except MalformedInputError as e:
            skipped += 1
            logger.warning(
                "Skipping malformed %s record at index %d: %s",
                platform,
                index,
                e,
            )
            continue

        external_id = record.content.external_id
        previous = by_external_id.get(external_id)
        if previous is not None:
            if record.content.published_at is None and previous.content.published_at is not None:
                record = replace(
                    record,
                    content=replace(record.content, published_at=previous.content.published_at),
                )
            if record.profile_followers is None:
                record = replace(record, profile_followers=previous.profile_followers)
            # Keep the first-seen position, take the later values
        by_external_id[external_id] = record

    return list(by_external_id.values()), skipped


def _resolve_followers(
    records: list[NormalizedRecord],
    fandom_id,
    platform: str,
    store: FandomStore,
) -> tuple[int, bool]:
    """Return (followers, came_from_dataset)."""
    for record in records:
        if record.profile_followers is not None:
            return record.profile_followers, True
    stored = store.get_platform_followers(fandom_id, platform)
    return (stored or 0), False


def normalize_dataset(
    raw_items: list[Any],
    fandom_id,
    platform: str,
    source_job_id: str = "",
    *,
    store: FandomStore | None = None,
    scraped_at: datetime | None = None,
    weights: RelevanceWeights | None = None,
    miner_config: MinerConfig | None = None,
) -> IngestResult:
    """
    Normalize and persist one raw dataset for a fandom on a platform.

    Args:
        raw_items: Raw records as returned by the scraper
        fandom_id: Fandom the dataset was scraped for
        platform: Platform value (instagram, tiktok, ...)
        source_job_id: Scrape job identifier, for logging
        store: Store to write through (default DjangoFandomStore)
        scraped_at: Scrape time (default now)

    Returns:
        IngestResult; items_count is the number of distinct content items
        written, items_created those that did not exist before.

    Raises:
        ValueError: If the platform has no record shape
    """
    get_record_shape(platform)
    store = store or DjangoFandomStore()
    scraped_at = scraped_at or timezone.now()
    weights = weights or RelevanceWeights.from_settings()

    records, skipped = resolve_records(raw_items, platform, now=scraped_at)
    logger.info(
        "Normalizing dataset: job=%s fandom=%s platform=%s raw=%d distinct=%d skipped=%d",
        source_job_id,
        fandom_id,
        platform,
        len(raw_items),
        len(records),
        skipped,
    )

    items_created = 0
    influencer_count = 0
    try:
        followers, from_dataset = _resolve_followers(records, fandom_id, platform, store)
        contents = [r.content for r in records]
        rollups = rollup_by_date(contents, scraped_at=scraped_at)
        influencers = extract_influencers(records, weights)

        with store.atomic():
            for content in contents:
                _, created = store.upsert_content_item(
                    platform,
                    content.external_id,
                    {
                        "fandom_id": fandom_id,
                        "content_type": content.content_type,
                        "text": content.text,
                        "url": content.url,
                        "author_username": content.author_username,
                        "author_followers": content.author_followers,
                        "likes": content.likes,
                        "comments": content.comments,
                        "shares": content.shares,
                        "views": content.views,
                        "hashtags": content.hashtags,
                        "published_at": content.published_at,
                        "scraped_at": scraped_at,
                    },
                )
                if created:
                    items_created += 1

            if records:
                _write_snapshots(store, fandom_id, platform, rollups, followers, scrape_date(scraped_at))

            for profile in influencers:
                store.upsert_influencer(fandom_id, platform, profile.username, profile.as_fields())
                influencer_count += 1

            if from_dataset and followers > 0:
                store.update_platform_followers(fandom_id, platform, followers)

        discoveries = scan_batch(contents, scraped_at=scraped_at, store=store, config=miner_config)
    except PersistenceError as e:
        logger.error(
            "Normalization failed: job=%s fandom=%s platform=%s error=%s",
            source_job_id,
            fandom_id,
            platform,
            e,
        )
        return IngestResult.failed(str(e), cause=e)

    logger.info(
        "Normalization complete: job=%s items=%d created=%d influencers=%d discoveries=%d",
        source_job_id,
        len(records),
        items_created,
        influencer_count,
        len(discoveries),
    )
    return IngestResult(
        success=True,
        items_count=len(records),
        items_created=items_created,
        influencer_count=influencer_count,
        discoveries=discoveries,
    )


def _write_snapshots(
    store: FandomStore,
    fandom_id,
    platform: str,
    rollups: list[DailyRollup],
    followers: int,
    current_day,
) -> None:
    """
    Back-fill earlier dates, then write the scrape date's snapshot.

    A back-filled date keeps the follower count and growth rate already
    stored for it. A new back-filled date carries the latest earlier
    snapshot's follower count, or the current count with no history, so
    it never shifts the growth baseline.
    """
    current = None
    for rollup in rollups:
        if rollup.date >= current_day:
            current = rollup
            continue
        existing = store.get_snapshot(fandom_id, platform, rollup.date)
        if existing is not None:
            day_followers, growth = existing.followers, existing.growth_rate
        else:
            prior = store.get_latest_snapshot(fandom_id, platform, before=rollup.date)
            day_followers, growth = (prior.followers if prior else followers), 0.0
        store.append_or_replace_metric_snapshot(
            fandom_id,
            platform,
            rollup.date,
            snapshot_fields(rollup, followers=day_followers, growth=growth),
        )

    if current is None:
        # Every item predates the scrape; keep today's aggregates if already stored
        existing = store.get_snapshot(fandom_id, platform, current_day)
        current = DailyRollup.from_snapshot(existing) if existing else DailyRollup(date=current_day)

    prior = store.get_latest_snapshot(fandom_id, platform, before=current_day)
    growth = growth_rate(followers, prior.followers if prior else None)
    store.append_or_replace_metric_snapshot(
        fandom_id,
        platform,
        current_day,
        snapshot_fields(current, followers=followers, growth=growth),
    )
