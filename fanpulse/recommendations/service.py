"""
Recommendation service.

Builds fandom profiles from the store and runs the engine.
"""

from __future__ import annotations

import logging

from fanpulse.core.dto import Recommendation
from fanpulse.core.enums import MarketSegment
from fanpulse.core.errors import PersistenceError
from fanpulse.core.store import DjangoFandomStore, FandomStore
from fanpulse.recommendations.engine import (
    FandomProfile,
    PlatformMetrics,
    RecommendationConfig,
    generate_recommendations,
)

logger = logging.getLogger(__name__)


def build_profiles(store: FandomStore) -> list[FandomProfile]:
    """Active fandoms in creation order with their latest snapshot per platform."""
    fandoms = store.list_fandoms()
    latest = store.list_latest_snapshots()
    followers = {
        (fp.fandom_id, fp.platform): fp.followers for fp in store.list_fandom_platforms()
    }

    profiles = []
    for fandom in fandoms:
        platforms = []
        for (fandom_id, platform), snapshot in sorted(
            latest.items(), key=lambda entry: entry[0][1]
        ):
            if fandom_id != fandom.id:
                continue
            platforms.append(PlatformMetrics(
                platform=platform,
                engagement_rate=snapshot.engagement_rate,
                growth_rate=snapshot.growth_rate,
                followers=snapshot.followers or followers.get((fandom_id, platform), 0),
            ))
        profiles.append(FandomProfile(
            fandom_id=fandom.id,
            name=fandom.name,
            tier=fandom.tier,
            demographic_tags=list(fandom.demographic_tags or []),
            platforms=platforms,
        ))
    return profiles


def get_recommendations(
    segment: str = MarketSegment.ALL,
    store: FandomStore | None = None,
    config: RecommendationConfig | None = None,
) -> list[Recommendation]:
    """
    Recommendations for a segment, highest score first.

    Equal scores keep fandom creation order. Store failures are logged and
    give an empty list.
    """
    store = store or DjangoFandomStore()
    try:
        profiles = build_profiles(store)
    except PersistenceError as e:
        logger.error("Recommendations unavailable: %s", e)
        return []

    recommendations = generate_recommendations(profiles, segment, config)
    recommendations.sort(key=lambda r: r.score, reverse=True)
    logger.info(
        "Recommendations generated",
        extra={
            "segment": str(segment),
            "fandoms": len(profiles),
            "recommendations": len(recommendations),
        },
    )
    return recommendations
