"""
Influencer extraction and relevance scoring.

One profile per distinct author (case-insensitive username) that has a
resolvable follower count. Relevance is

    0.6 * E + 0.4 * R, clipped to [0, 100]

where E is the author's engagement rate scaled against a ceiling rate and
R is the log-scaled follower count against a ceiling audience.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from django.conf import settings

from fanpulse.normalization.adapters import NormalizedRecord


@dataclass(frozen=True)
class RelevanceWeights:
    engagement: float = 0.6
    reach: float = 0.4
    engagement_rate_ceiling: float = 0.10
    reach_ceiling: int = 10_000_000

    @classmethod
    def from_settings(cls) -> "RelevanceWeights":
        return cls(
            engagement=getattr(settings, "FANPULSE_INFLUENCER_ENGAGEMENT_WEIGHT", 0.6),
            reach=getattr(settings, "FANPULSE_INFLUENCER_REACH_WEIGHT", 0.4),
            engagement_rate_ceiling=getattr(
                settings, "FANPULSE_INFLUENCER_ENGAGEMENT_CEILING", 0.10
            ),
            reach_ceiling=getattr(settings, "FANPULSE_INFLUENCER_REACH_CEILING", 10_000_000),
        )


@dataclass
class InfluencerProfile:
    username: str
    display_name: str
    followers: int
    engagement_rate: float
    profile_url: str
    avatar_url: str
    bio: str
    location: str
    post_count: int
    relevance_score: float

    def as_fields(self) -> dict:
        fields = asdict(self)
        fields.pop("username")
        return fields


def _clip(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def relevance_score(
    engagement_rate: float,
    followers: int,
    weights: RelevanceWeights | None = None,
) -> float:
    weights = weights or RelevanceWeights()
    norm_engagement = _clip(
        engagement_rate / weights.engagement_rate_ceiling * 100
        if weights.engagement_rate_ceiling > 0 else 0.0
    )
    norm_reach = _clip(
        math.log10(max(followers, 0) + 1) / math.log10(weights.reach_ceiling + 1) * 100
    )
    score = weights.engagement * norm_engagement + weights.reach * norm_reach
    return round(_clip(score), 2)


@dataclass
class _AuthorAccumulator:
    username: str
    display_name: str = ""
    followers: int | None = None
    profile_url: str = ""
    avatar_url: str = ""
    bio: str = ""
    location: str = ""
    post_count: int = 0
    engagement: int = 0


def extract_influencers(
    records: list[NormalizedRecord],
    weights: RelevanceWeights | None = None,
) -> list[InfluencerProfile]:
    """
    Build influencer profiles from deduplicated records, in first-seen order.

    The record with the highest follower count supplies display fields;
    location falls back to any record that has one.
    """
    weights = weights or RelevanceWeights()
    by_username: dict[str, _AuthorAccumulator] = {}

    for record in records:
        author = record.author
        if author is None:
            continue
        acc = by_username.setdefault(author.username.lower(), _AuthorAccumulator(author.username))
        acc.post_count += 1
        acc.engagement += record.content.engagement

        if author.followers is not None and (acc.followers is None or author.followers > acc.followers):
            acc.followers = author.followers
            acc.username = author.username
            acc.display_name = author.display_name or acc.display_name
            acc.profile_url = author.profile_url or acc.profile_url
            acc.avatar_url = author.avatar_url or acc.avatar_url
            acc.bio = author.bio or acc.bio
        if not acc.location and author.location:
            acc.location = author.location
        if not acc.profile_url and author.profile_url:
            acc.profile_url = author.profile_url

    profiles = []
    for acc in by_username.values():
        if acc.followers is None:
            continue
        rate = (acc.engagement / acc.post_count) / max(acc.followers, 1)
        profiles.append(InfluencerProfile(
            username=acc.username,
            display_name=acc.display_name,
            followers=acc.followers,
            engagement_rate=rate,
            profile_url=acc.profile_url,
            avatar_url=acc.avatar_url,
            bio=acc.bio,
            location=acc.location,
            post_count=acc.post_count,
            relevance_score=relevance_score(rate, acc.followers, weights),
        ))
    return profiles
