"""
Discovery miner.

Surfaces fandoms that are not tracked yet from raw cross-platform signal
(hashtags and @mentions). Pure functions over ContentSignal values; no
database access.

Per candidate (grouped by normalized name, each item counted once):

    occurrences     items mentioning the candidate
    estimatedReach  sum over distinct authors of the author's best reach
                    (views, or follower count when views are missing);
                    authorless items count individually
    size            100 * ln(1 + occ) / ln(1 + max occ in batch)
    sustainability  100 * distinct active days / days in the batch window
    growth          50 + 50 * (recent - earlier) / (recent + earlier),
                    halves split at the window midpoint; 50 for a
                    one-day window
    overall         weighted mean of the three, rounded half up
    confidence      50 * min(occ / 10, 1) + 50 * min(authors / 5, 1)

Tiers: size < 33 emerging, 33..66 trending, > 66 existing.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable

from django.conf import settings

from fanpulse.core.dto import DiscoveryCandidate
from fanpulse.core.enums import DiscoverySource, FandomTier

if TYPE_CHECKING:
    from fanpulse.core.models import ContentItem
    from fanpulse.integrations.google_trends import RegionalInterestClient
    from fanpulse.normalization.adapters import NormalizedContent

logger = logging.getLogger(__name__)


# Tags too generic to indicate a community
EXCLUDE_WORDS = frozenset({
    "fyp", "foryou", "foryoupage", "viral", "trending", "philippines",
    "pinoy", "filipino", "pilipinas", "manila", "cebu", "davao",
    "love", "like", "follow", "share", "comment", "subscribe",
    "reels", "shorts", "tiktok", "instagram", "facebook", "youtube",
    "music", "dance", "kpop", "cpop", "jpop", "concert", "live",
    "2024", "2025", "2026", "new", "latest", "update", "news",
})

# Checked in order; first match wins
GROUP_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("K-Pop", ("kpop", "korean", "bts", "blackpink")),
    ("P-Pop", ("ppop", "pop", "idol", "sb19", "bini")),
    ("Reality TV", ("drag", "pageant", "queen")),
    ("TV Fandoms", ("aldub", "abs", "gma")),
]
UNKNOWN_GROUP = "Unknown"

_MENTION_RE = re.compile(r"@(\w{3,30})")


@dataclass(frozen=True)
class MinerConfig:
    min_occurrences: int = 3
    max_candidates: int = 20
    min_name_length: int = 3
    max_name_length: int = 40
    size_weight: float = 1.0
    sustainability_weight: float = 1.0
    growth_weight: float = 1.0
    occurrence_target: int = 10
    author_target: int = 5
    sample_limit: int = 3
    sample_length: int = 120
    corroboration_bonus: int = 10
    resurface_growth: int = 5
    scan_limit: int = 500

    @classmethod
    def from_settings(cls) -> "MinerConfig":
        weights = getattr(settings, "FANPULSE_DISCOVERY_WEIGHTS", {})
        return cls(
            min_occurrences=getattr(settings, "FANPULSE_DISCOVERY_MIN_OCCURRENCES", 3),
            max_candidates=getattr(settings, "FANPULSE_DISCOVERY_MAX_CANDIDATES", 20),
            size_weight=weights.get("size", 1.0),
            sustainability_weight=weights.get("sustainability", 1.0),
            growth_weight=weights.get("growth", 1.0),
            corroboration_bonus=getattr(settings, "FANPULSE_DISCOVERY_CORROBORATION_BONUS", 10),
            resurface_growth=getattr(settings, "FANPULSE_DISCOVERY_RESURFACE_GROWTH", 5),
            scan_limit=getattr(settings, "FANPULSE_DISCOVERY_SCAN_LIMIT", 500),
        )


@dataclass
class ContentSignal:
    """The parts of a content item the miner looks at."""

    platform: str
    external_id: str
    text: str = ""
    hashtags: list[str] = field(default_factory=list)
    views: int = 0
    author_username: str = ""
    author_followers: int | None = None
    published_at: datetime | None = None
    scraped_at: datetime | None = None

    @classmethod
    def from_content_item(cls, item: "ContentItem") -> "ContentSignal":
        return cls(
            platform=item.platform,
            external_id=item.external_id,
            text=item.text or "",
            hashtags=list(item.hashtags or []),
            views=item.views,
            author_username=item.author_username,
            author_followers=item.author_followers,
            published_at=item.published_at,
            scraped_at=item.scraped_at,
        )

    @classmethod
    def from_normalized(cls, content: "NormalizedContent", scraped_at: datetime) -> "ContentSignal":
        return cls(
            platform=content.platform,
            external_id=content.external_id,
            text=content.text,
            hashtags=list(content.hashtags),
            views=content.views,
            author_username=content.author_username,
            author_followers=content.author_followers,
            published_at=content.published_at,
            scraped_at=scraped_at,
        )

    @property
    def observed_on(self) -> date | None:
        moments = [m for m in (self.published_at, self.scraped_at) if m is not None]
        if not moments:
            return None
        return min(moments).astimezone(timezone.utc).date()

    @property
    def reach(self) -> int:
        if self.views > 0:
            return self.views
        return self.author_followers or 0


def normalize_candidate_name(text: str) -> str:
    """Lowercase, drop leading #/@ and every non-alphanumeric character."""
    return "".join(ch for ch in text.lower().lstrip("#@") if ch.isalnum())


@dataclass(frozen=True)
class TrackedNames:
    """Names that identify fandoms already tracked."""

    exact: frozenset[str]
    compact: tuple[str, ...]

    @classmethod
    def from_fandoms(cls, fandoms: Iterable[Any]) -> "TrackedNames":
        exact: set[str] = set()
        compact: list[str] = []
        for fandom in fandoms:
            for value in (fandom.name, fandom.slug):
                norm = normalize_candidate_name(value or "")
                if norm:
                    exact.add(norm)
                    if len(norm) >= 3 and norm not in compact:
                        compact.append(norm)
            for word in (fandom.name or "").split():
                norm = normalize_candidate_name(word)
                if norm:
                    exact.add(norm)
        return cls(exact=frozenset(exact), compact=tuple(compact))

    @classmethod
    def empty(cls) -> "TrackedNames":
        return cls(exact=frozenset(), compact=())

    def covers(self, candidate: str) -> bool:
        if candidate in self.exact:
            return True
        return any(name in candidate or candidate in name for name in self.compact)


def half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def suggest_tier(size_score: int) -> FandomTier:
    if size_score < 33:
        return FandomTier.EMERGING
    if size_score <= 66:
        return FandomTier.TRENDING
    return FandomTier.EXISTING


def suggest_group(name: str) -> str:
    for group, keywords in GROUP_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return group
    return UNKNOWN_GROUP


@dataclass
class _CandidateStats:
    display_name: str
    occurrences: int = 0
    sources: Counter = field(default_factory=Counter)
    platforms: list[str] = field(default_factory=list)
    samples: list[str] = field(default_factory=list)
    day_counts: Counter = field(default_factory=Counter)
    author_reach: dict[str, int] = field(default_factory=dict)
    anonymous_reach: int = 0
    anonymous_items: int = 0

    def add(self, signal: ContentSignal, source: str, config: MinerConfig) -> None:
        self.occurrences += 1
        self.sources[source] += 1
        if signal.platform not in self.platforms:
            self.platforms.append(signal.platform)
        if signal.text and len(self.samples) < config.sample_limit:
            text = signal.text
            if len(text) > config.sample_length:
                text = text[: config.sample_length] + "..."
            self.samples.append(text)
        day = signal.observed_on
        if day is not None:
            self.day_counts[day] += 1
        author = signal.author_username.lower()
        if author:
            self.author_reach[author] = max(self.author_reach.get(author, 0), signal.reach)
        else:
            self.anonymous_items += 1
            self.anonymous_reach += signal.reach

    @property
    def distinct_authors(self) -> int:
        return len(self.author_reach) + self.anonymous_items

    @property
    def estimated_reach(self) -> int:
        return sum(self.author_reach.values()) + self.anonymous_reach


def _signal_terms(signal: ContentSignal) -> list[tuple[str, str]]:
    terms = [(tag, DiscoverySource.HASHTAG) for tag in signal.hashtags if tag]
    terms.extend((m, DiscoverySource.MENTION) for m in _MENTION_RE.findall(signal.text or ""))
    return terms


def _is_eligible(name: str, tracked: TrackedNames, config: MinerConfig) -> bool:
    if not (config.min_name_length <= len(name) <= config.max_name_length):
        return False
    if name in EXCLUDE_WORDS:
        return False
    return not tracked.covers(name)


def _growth_score(day_counts: Counter, window_start: date, window_days: int) -> tuple[int, int, int]:
    if window_days <= 1:
        return 50, 0, 0
    recent = earlier = 0
    for day, count in day_counts.items():
        if (day - window_start).days >= window_days / 2:
            recent += count
        else:
            earlier += count
    if recent + earlier == 0:
        return 50, 0, 0
    return half_up(50 + 50 * (recent - earlier) / (recent + earlier)), recent, earlier


def mine_candidates(
    signals: Iterable[ContentSignal],
    tracked: TrackedNames | None = None,
    config: MinerConfig | None = None,
) -> list[DiscoveryCandidate]:
    """
    Group signals by candidate name and score the groups that meet the
    occurrence threshold.

    Returns candidates ordered by overall score, then confidence, then
    occurrences (all descending), at most config.max_candidates.
    """
    tracked = tracked or TrackedNames.empty()
    config = config or MinerConfig()
    signals = list(signals)

    groups: dict[str, _CandidateStats] = {}
    for signal in signals:
        seen_in_item: set[str] = set()
        for raw_term, source in _signal_terms(signal):
            name = normalize_candidate_name(raw_term)
            if name in seen_in_item or not _is_eligible(name, tracked, config):
                continue
            seen_in_item.add(name)
            stats = groups.setdefault(name, _CandidateStats(display_name=raw_term.lstrip("#@")))
            stats.add(signal, source, config)

    qualifying = {
        name: stats for name, stats in groups.items()
        if stats.occurrences >= config.min_occurrences
    }
    if not qualifying:
        return []

    observed_days = [d for d in (s.observed_on for s in signals) if d is not None]
    window_start = min(observed_days) if observed_days else None
    window_days = (max(observed_days) - window_start).days + 1 if observed_days else 1
    max_occurrences = max(s.occurrences for s in qualifying.values())
    total_weight = config.size_weight + config.sustainability_weight + config.growth_weight

    candidates = []
    for name, stats in qualifying.items():
        size = half_up(100 * math.log1p(stats.occurrences) / math.log1p(max_occurrences))
        sustainability = min(100, half_up(100 * len(stats.day_counts) / window_days))
        if window_start is None:
            growth, recent, earlier = 50, 0, 0
        else:
            growth, recent, earlier = _growth_score(stats.day_counts, window_start, window_days)
        overall = half_up(
            (
                config.size_weight * size
                + config.sustainability_weight * sustainability
                + config.growth_weight * growth
            ) / total_weight
        ) if total_weight > 0 else 0
        confidence = min(100, half_up(
            50 * min(stats.occurrences / config.occurrence_target, 1)
            + 50 * min(stats.distinct_authors / config.author_target, 1)
        ))
        source = (
            DiscoverySource.MENTION
            if stats.sources[DiscoverySource.MENTION] > stats.sources[DiscoverySource.HASHTAG]
            else DiscoverySource.HASHTAG
        )

        candidates.append(DiscoveryCandidate(
            name=stats.display_name,
            normalized_name=name,
            source=source,
            platforms=stats.platforms,
            occurrences=stats.occurrences,
            distinct_authors=stats.distinct_authors,
            estimated_reach=stats.estimated_reach,
            size_score=size,
            sustainability_score=sustainability,
            growth_score=growth,
            overall_score=overall,
            confidence=confidence,
            suggested_tier=suggest_tier(size),
            suggested_group=suggest_group(name),
            sample_content=stats.samples,
            evidence={
                "window_days": window_days,
                "active_days": len(stats.day_counts),
                "recent_occurrences": recent,
                "earlier_occurrences": earlier,
            },
        ))

    candidates.sort(key=lambda c: (-c.overall_score, -c.confidence, -c.occurrences))
    logger.debug(
        "Mined candidates: signals=%d groups=%d qualifying=%d",
        len(signals),
        len(groups),
        len(qualifying),
    )
    return candidates[: config.max_candidates]


def corroborate(
    candidates: list[DiscoveryCandidate],
    client: "RegionalInterestClient",
    *,
    top_n: int = 5,
    bonus: int = 10,
    geo: str = "PH",
) -> list[DiscoveryCandidate]:
    """
    Check the top candidates against regional search interest.

    Candidates with non-zero regional interest gain `bonus` confidence
    (capped at 100) and record their top regions as evidence. Lookup
    failures are recorded on the candidate and otherwise ignored.
    """
    head = candidates[:top_n]
    if not head:
        return candidates

    results = client.fetch_regional_interest_batch([c.name for c in head], geo=geo)
    corroborated = []
    for candidate, result in zip(head, results):
        evidence = dict(candidate.evidence)
        update: dict[str, Any] = {}
        if result.ok and any(r.interest_value > 0 for r in result.regions):
            evidence["regional_interest"] = [
                {"region_code": r.region_code, "interest_value": r.interest_value}
                for r in result.regions[:3]
            ]
            update["confidence"] = min(100, candidate.confidence + bonus)
        else:
            evidence["regional_interest_error"] = result.error or "no interest"
        update["evidence"] = evidence
        corroborated.append(candidate.model_copy(update=update))
    return corroborated + candidates[top_n:]
