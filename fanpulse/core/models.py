"""
FanPulse canonical schema.

Models:
- Fandom: tracked fan community (soft-retired, never deleted)
- FandomPlatform: (fandom, platform) pairing with handle and follower count
- ContentItem: one scraped post, unique by (platform, external_id)
- MetricSnapshot: daily rollup, unique by (fandom, platform, date)
- Influencer: author surfaced from content, unique by (fandom, platform, username)
- GoogleTrend: interest value, unique by (fandom, keyword, date, region)
- FandomDiscovery: untracked candidate, unique by normalized name
- ScrapeRun: audit record of one ingestion attempt
"""

from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone

from fanpulse.core.enums import (
    ContentType,
    DiscoverySource,
    DiscoveryStatus,
    FandomTier,
    Platform,
    ScrapeStatus,
)


class Fandom(models.Model):
    """A tracked fan community. Created by manual entry or discovery promotion."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    tier = models.CharField(max_length=20, choices=FandomTier.choices)
    description = models.TextField(blank=True)
    fandom_group = models.CharField(max_length=255, blank=True)
    demographic_tags = models.JSONField(default=list, blank=True)  # list of DemographicTag values
    is_retired = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fanpulse_fandom"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["tier"], name="idx_fandom_tier"),
        ]

    def __str__(self) -> str:
        return self.name


class FandomPlatform(models.Model):
    """One (fandom, platform) pairing. Follower count refreshed on each ingest."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="platforms")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    handle = models.CharField(max_length=255)
    followers = models.BigIntegerField(default=0)
    url = models.URLField(max_length=500, blank=True)
    last_scraped_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "fanpulse_fandom_platform"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "platform"],
                name="uniq_fandom_platform",
            )
        ]

    def __str__(self) -> str:
        return f"{self.fandom_id}:{self.platform}:{self.handle}"


class ContentItem(models.Model):
    """
    One scraped post/video/tweet.

    Re-ingestion of the same (platform, external_id) updates in place.
    Counters are never null.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="content_items")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    external_id = models.CharField(max_length=255)
    content_type = models.CharField(max_length=20, choices=ContentType.choices)
    text = models.TextField(blank=True)
    url = models.URLField(max_length=1000, blank=True)
    author_username = models.CharField(max_length=255, blank=True)
    author_followers = models.BigIntegerField(null=True, blank=True)
    likes = models.BigIntegerField(default=0)
    comments = models.BigIntegerField(default=0)
    shares = models.BigIntegerField(default=0)
    views = models.BigIntegerField(default=0)
    hashtags = models.JSONField(default=list, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    scraped_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "fanpulse_content_item"
        constraints = [
            models.UniqueConstraint(
                fields=["platform", "external_id"],
                name="uniq_content_platform_ext_id",
            )
        ]
        indexes = [
            models.Index(fields=["fandom", "platform"], name="idx_content_fandom_platform"),
            models.Index(fields=["scraped_at"], name="idx_content_scraped_at"),
        ]

    def __str__(self) -> str:
        return f"{self.platform}:{self.external_id}"

    @property
    def engagement(self) -> int:
        return self.likes + self.comments + self.shares


class MetricSnapshot(models.Model):
    """Daily rollup for one (fandom, platform). Replaced on same-day re-ingest."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="snapshots")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    date = models.DateField()
    followers = models.BigIntegerField(default=0)
    posts_count = models.PositiveIntegerField(default=0)
    engagement_total = models.BigIntegerField(default=0)
    avg_likes = models.FloatField(default=0.0)
    avg_comments = models.FloatField(default=0.0)
    avg_shares = models.FloatField(default=0.0)
    engagement_rate = models.FloatField(default=0.0)
    growth_rate = models.FloatField(default=0.0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "fanpulse_metric_snapshot"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "platform", "date"],
                name="uniq_snapshot_fandom_plat_date",
            )
        ]
        indexes = [
            models.Index(fields=["platform", "date"], name="idx_snapshot_platform_date"),
        ]

    def __str__(self) -> str:
        return f"{self.fandom_id}:{self.platform}@{self.date.isoformat()}"


class Influencer(models.Model):
    """Author surfaced from a fandom's content. Last write wins."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="influencers")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    username = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255, blank=True)
    followers = models.BigIntegerField(default=0)
    engagement_rate = models.FloatField(default=0.0)
    profile_url = models.URLField(max_length=500, blank=True)
    avatar_url = models.URLField(max_length=1000, blank=True)
    bio = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    post_count = models.PositiveIntegerField(default=0)
    relevance_score = models.FloatField(default=0.0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fanpulse_influencer"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "platform", "username"],
                name="uniq_influencer_identity",
            )
        ]

    def __str__(self) -> str:
        return f"{self.platform}:@{self.username}"


class GoogleTrend(models.Model):
    """Search interest for a keyword, nationally (region=PH) or per region code."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="trends")
    keyword = models.CharField(max_length=255)
    date = models.DateField()
    region = models.CharField(max_length=20, default="PH")
    interest_value = models.PositiveSmallIntegerField(default=0)

    class Meta:
        db_table = "fanpulse_google_trend"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "keyword", "date", "region"],
                name="uniq_trend_identity",
            )
        ]

    def __str__(self) -> str:
        return f"{self.keyword}@{self.region}:{self.date.isoformat()}={self.interest_value}"


class FandomDiscovery(models.Model):
    """
    An untracked candidate fandom surfaced by the miner.

    Overwritten in place when re-detected, unless tracked or cleared.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    normalized_name = models.CharField(max_length=255, unique=True)
    source = models.CharField(
        max_length=20, choices=DiscoverySource.choices, default=DiscoverySource.HASHTAG
    )
    platforms = models.JSONField(default=list, blank=True)
    occurrences = models.PositiveIntegerField(default=0)
    distinct_authors = models.PositiveIntegerField(default=0)
    estimated_reach = models.BigIntegerField(default=0)
    size_score = models.PositiveSmallIntegerField(default=0)
    sustainability_score = models.PositiveSmallIntegerField(default=0)
    growth_score = models.PositiveSmallIntegerField(default=0)
    overall_score = models.PositiveSmallIntegerField(default=0)
    confidence = models.PositiveSmallIntegerField(default=0)
    suggested_tier = models.CharField(
        max_length=20, choices=FandomTier.choices, default=FandomTier.EMERGING
    )
    suggested_group = models.CharField(max_length=100, blank=True)
    sample_content = models.JSONField(default=list, blank=True)
    evidence = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=20, choices=DiscoveryStatus.choices, default=DiscoveryStatus.DISCOVERED
    )
    tracked_fandom = models.ForeignKey(
        Fandom,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="discoveries",
    )
    first_detected_at = models.DateTimeField(default=timezone.now)
    last_detected_at = models.DateTimeField(default=timezone.now)
    dismissed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "fanpulse_fandom_discovery"
        indexes = [
            models.Index(fields=["status", "overall_score"], name="idx_discovery_status_score"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"


class ScrapeRun(models.Model):
    """
    Audit record of one ingestion attempt.

    Status transitions are enforced by the store, not by save().
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor_id = models.CharField(max_length=255, blank=True)
    dataset_id = models.CharField(max_length=255, blank=True)
    fandom = models.ForeignKey(
        Fandom,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="scrape_runs",
    )
    platform = models.CharField(max_length=20, choices=Platform.choices, blank=True)
    status = models.CharField(
        max_length=20, choices=ScrapeStatus.choices, default=ScrapeStatus.PENDING
    )
    started_at = models.DateTimeField(default=timezone.now)
    finished_at = models.DateTimeField(null=True, blank=True)
    items_count = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True)

    class Meta:
        db_table = "fanpulse_scrape_run"
        indexes = [
            models.Index(fields=["dataset_id"], name="idx_scrape_run_dataset"),
            models.Index(fields=["status", "started_at"], name="idx_scrape_run_status"),
        ]

    def __str__(self) -> str:
        return f"{self.actor_id}:{self.dataset_id} [{self.status}]"
