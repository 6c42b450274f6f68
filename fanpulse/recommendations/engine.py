"""
Recommendation engine.

Ranks tracked fandoms for campaign targeting per market segment.

For each (fandom, applicable segment) pair three 0-100 components are
combined with tunable weights:
- growth: mean latest growth rate against a ceiling rate
- engagement: latest engagement rate against peers on the same platform
  and tier (the peer median scores 50)
- demographic: share of the segment's target tags the fandom carries,
  never below a floor

Fandoms without any snapshot are left out rather than scored as zero.
Output follows input order (fandom creation order), then segment order.
The caller sorts.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Any, Iterable

from django.conf import settings

from fanpulse.core.dto import Recommendation, ScoreDriver
from fanpulse.core.enums import DemographicTag, MarketSegment, Platform

SEGMENT_TARGET_TAGS: dict[str, frozenset[str]] = {
    MarketSegment.POSTPAID: frozenset({DemographicTag.ABC, DemographicTag.GEN_Y}),
    MarketSegment.PREPAID: frozenset({DemographicTag.CDE, DemographicTag.GEN_Z}),
}

SEGMENT_LABELS = {
    MarketSegment.POSTPAID: "ABC Postpaid",
    MarketSegment.PREPAID: "CDE Prepaid",
    MarketSegment.ALL: "all-segment",
}

DRIVER_ORDER: tuple[ScoreDriver, ...] = ("growth", "engagement", "demographic")

PLATFORM_ORDER = {value: index for index, value in enumerate(Platform.values)}

ACTION_TEMPLATES = {
    "growth": (
        "Sponsor emerging creators in the {name} community on {platform} "
        "and run awareness ads on fandom keywords while growth is accelerating."
    ),
    "engagement": (
        "Create co-branded content with top {name} fan accounts and run "
        "engagement-based campaigns on {platform}."
    ),
    "demographic": (
        "Place {segment} offers in front of {name} through periodic sponsored "
        "posts on {platform}."
    ),
}

RATIONALE_TEMPLATES = {
    "growth": (
        "{name} is growing at {growth:.1f}% per period. Early investment could "
        "capture this audience before competitors."
    ),
    "engagement": (
        "{name} has a highly engaged community at {engagement:.1f}% engagement, "
        "above its {tier} peers. Strong potential for conversion-focused campaigns."
    ),
    "demographic": (
        "{name} matches the {segment} audience ({tags}). Suitable for brand "
        "visibility campaigns in this segment."
    ),
}


@dataclass(frozen=True)
class RecommendationConfig:
    growth_weight: float = 0.35
    engagement_weight: float = 0.40
    demographic_weight: float = 0.25
    demographic_floor: float = 20.0
    growth_ceiling: float = 0.10

    @classmethod
    def from_settings(cls) -> "RecommendationConfig":
        weights = getattr(settings, "FANPULSE_RECOMMENDATION_WEIGHTS", {})
        return cls(
            growth_weight=weights.get("growth", 0.35),
            engagement_weight=weights.get("engagement", 0.40),
            demographic_weight=weights.get("demographic", 0.25),
            demographic_floor=getattr(settings, "FANPULSE_RECOMMENDATION_DEMOGRAPHIC_FLOOR", 20.0),
            growth_ceiling=getattr(settings, "FANPULSE_RECOMMENDATION_GROWTH_CEILING", 0.10),
        )

    def weight(self, driver: str) -> float:
        return getattr(self, f"{driver}_weight")


@dataclass
class PlatformMetrics:
    """Latest known figures for one platform of a fandom."""

    platform: str
    engagement_rate: float = 0.0
    growth_rate: float = 0.0
    followers: int = 0


@dataclass
class FandomProfile:
    fandom_id: Any
    name: str
    tier: str
    demographic_tags: list[str] = field(default_factory=list)
    platforms: list[PlatformMetrics] = field(default_factory=list)

    @property
    def has_metrics(self) -> bool:
        return bool(self.platforms)


def _clip(value: float) -> float:
    return max(0.0, min(100.0, value))


def applicable_segments(tags: Iterable[str], segment: str) -> list[tuple[str, frozenset[str]]]:
    """
    (segment, target tags) pairs to score a fandom for.

    A concrete segment always applies. "all" yields each concrete segment
    whose targets overlap the fandom's tags, or a single "all" pair scored
    against every target tag when nothing overlaps.
    """
    if segment != MarketSegment.ALL:
        return [(segment, SEGMENT_TARGET_TAGS[segment])]

    tag_set = set(tags)
    overlapping = [
        (name, targets) for name, targets in SEGMENT_TARGET_TAGS.items() if tag_set & targets
    ]
    if overlapping:
        return overlapping
    union = frozenset().union(*SEGMENT_TARGET_TAGS.values())
    return [(MarketSegment.ALL, union)]


def peer_medians(profiles: Iterable[FandomProfile]) -> dict[tuple[str, str], float]:
    """Median latest engagement rate per (platform, tier)."""
    rates: dict[tuple[str, str], list[float]] = {}
    for profile in profiles:
        for metrics in profile.platforms:
            rates.setdefault((metrics.platform, profile.tier), []).append(metrics.engagement_rate)
    return {key: statistics.median(values) for key, values in rates.items()}


def growth_component(profile: FandomProfile, config: RecommendationConfig) -> float:
    if not profile.platforms or config.growth_ceiling <= 0:
        return 0.0
    mean_growth = statistics.fmean(m.growth_rate for m in profile.platforms)
    return _clip(100.0 * mean_growth / config.growth_ceiling)


def engagement_component(
    profile: FandomProfile, medians: dict[tuple[str, str], float]
) -> float:
    if not profile.platforms:
        return 0.0
    scores = []
    for metrics in profile.platforms:
        median = medians.get((metrics.platform, profile.tier), 0.0)
        if median > 0:
            scores.append(_clip(50.0 * metrics.engagement_rate / median))
        else:
            # Peer median of zero
            scores.append(100.0 if metrics.engagement_rate > 0 else 50.0)
    return statistics.fmean(scores)


def demographic_component(
    tags: Iterable[str], target_tags: frozenset[str], floor: float
) -> float:
    if not target_tags:
        return floor
    overlap = len(set(tags) & target_tags)
    return max(floor, _clip(100.0 * overlap / len(target_tags)))


def dominant_driver(contributions: dict[str, float]) -> ScoreDriver:
    """Largest weighted contribution; ties go growth, engagement, demographic."""
    best = DRIVER_ORDER[0]
    for driver in DRIVER_ORDER[1:]:
        if contributions[driver] > contributions[best]:
            best = driver
    return best


def suggest_platform(profile: FandomProfile) -> PlatformMetrics:
    """Platform with the highest latest engagement rate (ties by platform order)."""
    return min(
        profile.platforms,
        key=lambda m: (-m.engagement_rate, PLATFORM_ORDER.get(m.platform, len(PLATFORM_ORDER))),
    )


def _score_pair(
    profile: FandomProfile,
    segment: str,
    target_tags: frozenset[str],
    medians: dict[tuple[str, str], float],
    config: RecommendationConfig,
) -> Recommendation:
    components = {
        "growth": growth_component(profile, config),
        "engagement": engagement_component(profile, medians),
        "demographic": demographic_component(
            profile.demographic_tags, target_tags, config.demographic_floor
        ),
    }
    contributions = {d: config.weight(d) * components[d] for d in DRIVER_ORDER}
    total_weight = sum(config.weight(d) for d in DRIVER_ORDER)
    score = _clip(sum(contributions.values()) / total_weight) if total_weight > 0 else 0.0

    driver = dominant_driver(contributions)
    best = suggest_platform(profile)
    platform_label = Platform(best.platform).label
    segment_label = SEGMENT_LABELS[segment]
    matched = sorted(set(profile.demographic_tags) & target_tags)

    context = {
        "name": profile.name,
        "platform": platform_label,
        "segment": segment_label,
        "tier": profile.tier,
        "growth": 100.0 * statistics.fmean(m.growth_rate for m in profile.platforms),
        "engagement": 100.0 * best.engagement_rate,
        "tags": ", ".join(matched) if matched else "no direct tag match",
    }

    return Recommendation(
        fandom_id=profile.fandom_id,
        fandom_name=profile.name,
        tier=profile.tier,
        segment=segment,
        score=round(score, 2),
        growth_component=round(components["growth"], 2),
        engagement_component=round(components["engagement"], 2),
        demographic_component=round(components["demographic"], 2),
        dominant_driver=driver,
        suggested_platform=best.platform,
        suggested_action=ACTION_TEMPLATES[driver].format(**context),
        rationale=RATIONALE_TEMPLATES[driver].format(**context),
        estimated_reach=best.followers,
    )


def generate_recommendations(
    profiles: list[FandomProfile],
    segment: str = MarketSegment.ALL,
    config: RecommendationConfig | None = None,
) -> list[Recommendation]:
    """
    Score every (fandom, applicable segment) pair.

    Args:
        profiles: Fandom profiles in creation order
        segment: postpaid, prepaid or all
        config: Weights and thresholds (default from settings)

    Returns:
        Recommendations in generation order
    """
    config = config or RecommendationConfig.from_settings()
    scored = [p for p in profiles if p.has_metrics]
    medians = peer_medians(scored)

    recommendations = []
    for profile in scored:
        for segment_name, target_tags in applicable_segments(profile.demographic_tags, segment):
            recommendations.append(
                _score_pair(profile, segment_name, target_tags, medians, config)
            )
    return recommendations
