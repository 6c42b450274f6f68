"""
Daily metric aggregation.

Items are grouped by the calendar date (UTC) of the scrape time, or of
the publish time when that is known and earlier. Per date:

    postsCount      = number of items
    engagementTotal = sum(likes + comments + shares)
    avg*            = arithmetic mean over the date's items
    engagementRate  = engagementTotal / max(followers, 1)

Follower history belongs to the scrape date. Only the scrape date's
snapshot carries the dataset's follower count, with

    growthRate = (followers - prior) / max(prior, 1), 0 with no prior

where prior is the most recent snapshot strictly before the scrape date.
Earlier dates are back-filled: their engagement aggregates are replaced,
their follower count and growth rate are never rewritten.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable

from fanpulse.normalization.adapters import NormalizedContent


@dataclass
class DailyRollup:
    """Engagement aggregates for one date. No follower figures."""

    date: date
    posts_count: int = 0
    engagement_total: int = 0
    avg_likes: float = 0.0
    avg_comments: float = 0.0
    avg_shares: float = 0.0

    def as_fields(self) -> dict[str, Any]:
        fields = asdict(self)
        fields.pop("date")
        return fields

    @classmethod
    def from_snapshot(cls, snapshot) -> "DailyRollup":
        return cls(
            date=snapshot.date,
            posts_count=snapshot.posts_count,
            engagement_total=snapshot.engagement_total,
            avg_likes=snapshot.avg_likes,
            avg_comments=snapshot.avg_comments,
            avg_shares=snapshot.avg_shares,
        )


def engagement_rate(engagement_total: int, followers: int) -> float:
    return engagement_total / max(followers, 1)


def growth_rate(current_followers: int, prior_followers: int | None) -> float:
    if prior_followers is None:
        return 0.0
    return (current_followers - prior_followers) / max(prior_followers, 1)


def bucket_date(item: NormalizedContent, scraped_at: datetime) -> date:
    moment = scraped_at
    if item.published_at is not None and item.published_at < scraped_at:
        moment = item.published_at
    return moment.astimezone(timezone.utc).date()


def scrape_date(scraped_at: datetime) -> date:
    return scraped_at.astimezone(timezone.utc).date()


def rollup_by_date(
    items: Iterable[NormalizedContent], *, scraped_at: datetime
) -> list[DailyRollup]:
    """One DailyRollup per date that has items, oldest first."""
    groups: dict[date, list[NormalizedContent]] = defaultdict(list)
    for item in items:
        groups[bucket_date(item, scraped_at)].append(item)

    rollups = []
    for day in sorted(groups):
        day_items = groups[day]
        count = len(day_items)
        likes = sum(i.likes for i in day_items)
        comments = sum(i.comments for i in day_items)
        shares = sum(i.shares for i in day_items)
        rollups.append(DailyRollup(
            date=day,
            posts_count=count,
            engagement_total=likes + comments + shares,
            avg_likes=likes / count,
            avg_comments=comments / count,
            avg_shares=shares / count,
        ))
    return rollups


def snapshot_fields(rollup: DailyRollup, *, followers: int, growth: float) -> dict[str, Any]:
    """Complete MetricSnapshot fields for a rollup and its follower figures."""
    fields = rollup.as_fields()
    fields.update(
        followers=followers,
        engagement_rate=engagement_rate(rollup.engagement_total, followers),
        growth_rate=growth,
    )
    return fields
