"""
Discovery service.

Entry points:
- scan_batch(): mine one ingested batch (used by the normalizer, not persisted)
- run_discovery(): mine recent content across all fandoms and persist
- dismiss_discovery() / track_discovery() / clear_discoveries(): operator actions

Store failures in run_discovery are logged and surface as an empty list.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from django.utils.text import slugify

from fanpulse.core.dto import DiscoveryCandidate
from fanpulse.core.enums import DiscoveryStatus
from fanpulse.core.errors import ConflictError, PersistenceError
from fanpulse.core.store import DjangoFandomStore, FandomStore
from fanpulse.discovery.miner import (
    UNKNOWN_GROUP,
    ContentSignal,
    MinerConfig,
    TrackedNames,
    corroborate,
    mine_candidates,
)

if TYPE_CHECKING:
    from fanpulse.core.models import Fandom, FandomDiscovery
    from fanpulse.integrations.google_trends import RegionalInterestClient
    from fanpulse.normalization.adapters import NormalizedContent

logger = logging.getLogger(__name__)


def scan_batch(
    contents: list["NormalizedContent"],
    *,
    scraped_at: datetime,
    store: FandomStore,
    config: MinerConfig | None = None,
) -> list[DiscoveryCandidate]:
    """Candidates found in one ingested batch, excluding tracked fandoms."""
    if not contents:
        return []
    tracked = TrackedNames.from_fandoms(store.list_fandoms(include_retired=True))
    signals = [ContentSignal.from_normalized(c, scraped_at) for c in contents]
    return mine_candidates(signals, tracked, config or MinerConfig.from_settings())


def run_discovery(
    store: FandomStore | None = None,
    *,
    config: MinerConfig | None = None,
    trends_client: "RegionalInterestClient | None" = None,
    corroborate_top: int = 5,
) -> list[DiscoveryCandidate]:
    """
    Mine recent content and upsert the candidates.

    Returns the candidates that are in the discovered state after the
    upsert (new, refreshed or resurfaced), with id and status set.
    Candidates frozen by the store (tracked, cleared, or dismissed
    without enough growth) are left out.
    """
    store = store or DjangoFandomStore()
    config = config or MinerConfig.from_settings()

    try:
        contents = store.list_recent_content(config.scan_limit)
        tracked = TrackedNames.from_fandoms(store.list_fandoms(include_retired=True))
        candidates = mine_candidates(
            [ContentSignal.from_content_item(c) for c in contents],
            tracked,
            config,
        )
        if trends_client is not None:
            candidates = corroborate(
                candidates,
                trends_client,
                top_n=corroborate_top,
                bonus=config.corroboration_bonus,
            )

        active = []
        for candidate in candidates:
            upsert = store.upsert_discovery(
                candidate.normalized_name,
                candidate.store_fields(),
                resurface_growth=config.resurface_growth,
            )
            if upsert.is_active:
                active.append(candidate.model_copy(update={
                    "id": upsert.discovery.id,
                    "status": upsert.discovery.status,
                }))
    except PersistenceError as e:
        logger.error("Discovery run failed: %s", e, exc_info=True)
        return []

    logger.info(
        "Discovery run complete",
        extra={
            "scanned": len(contents),
            "candidates": len(candidates),
            "active": len(active),
        },
    )
    return active


def _get_discovery_or_raise(store: FandomStore, discovery_id) -> "FandomDiscovery":
    discovery = store.get_discovery(discovery_id)
    if discovery is None:
        raise ValueError(f"FandomDiscovery not found: {discovery_id}")
    return discovery


def dismiss_discovery(discovery_id, store: FandomStore | None = None) -> "FandomDiscovery":
    """
    Hide a candidate until it grows past the resurfacing threshold.

    Raises:
        ValueError: If the discovery does not exist
        ConflictError: If the discovery is already tracked or cleared
    """
    store = store or DjangoFandomStore()
    discovery = _get_discovery_or_raise(store, discovery_id)
    if discovery.status in (DiscoveryStatus.TRACKED, DiscoveryStatus.CLEARED):
        raise ConflictError(f"Discovery {discovery_id} is {discovery.status}")
    return store.set_discovery_status(discovery.id, DiscoveryStatus.DISMISSED)


def track_discovery(discovery_id, store: FandomStore | None = None) -> "Fandom":
    """
    Promote a candidate to a tracked Fandom.

    Links to an existing fandom with the same slug, otherwise creates one
    from the candidate and registers it on every platform it was seen on.
    Tracking an already tracked candidate returns its fandom.

    Raises:
        ValueError: If the discovery does not exist
        ConflictError: If the discovery was cleared
    """
    store = store or DjangoFandomStore()
    discovery = _get_discovery_or_raise(store, discovery_id)

    if discovery.status == DiscoveryStatus.TRACKED and discovery.tracked_fandom_id:
        fandom = store.get_fandom(discovery.tracked_fandom_id)
        if fandom is not None:
            return fandom
    if discovery.status == DiscoveryStatus.CLEARED:
        raise ConflictError(f"Discovery {discovery_id} was cleared")

    slug = slugify(discovery.name) or discovery.normalized_name
    group = discovery.suggested_group if discovery.suggested_group != UNKNOWN_GROUP else ""

    with store.atomic():
        fandom, created = store.get_or_create_fandom(slug, {
            "name": discovery.name,
            "tier": discovery.suggested_tier,
            "fandom_group": group,
            "description": (
                f"Discovered from {discovery.source} signal "
                f"({discovery.occurrences} occurrences)"
            ),
            "demographic_tags": [],
        })
        if created:
            for platform in discovery.platforms:
                store.upsert_fandom_platform(fandom.id, platform, handle=discovery.name)
        store.set_discovery_status(
            discovery.id, DiscoveryStatus.TRACKED, tracked_fandom_id=fandom.id
        )

    logger.info(
        "Discovery tracked: discovery=%s fandom=%s created=%s",
        discovery.id,
        fandom.id,
        created,
    )
    return fandom


def clear_discoveries(store: FandomStore | None = None) -> int:
    """Move every discovered candidate to cleared. Returns the count."""
    store = store or DjangoFandomStore()
    cleared = store.clear_discoveries()
    logger.info("Discoveries cleared: count=%d", cleared)
    return cleared
