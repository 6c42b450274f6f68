"""
FanPulse domain enums.

All enums are defined as Django TextChoices for database storage as lowercase strings.
Pydantic DTOs reuse the same values so there is one source of truth.
"""

from django.db import models


class Platform(models.TextChoices):
    """Social platforms a fandom can be tracked on."""
    INSTAGRAM = "instagram", "Instagram"
    TIKTOK = "tiktok", "TikTok"
    FACEBOOK = "facebook", "Facebook"
    YOUTUBE = "youtube", "YouTube"
    TWITTER = "twitter", "X (Twitter)"
    REDDIT = "reddit", "Reddit"


class ContentType(models.TextChoices):
    POST = "post", "Post"
    VIDEO = "video", "Video"
    REEL = "reel", "Reel"
    TWEET = "tweet", "Tweet"
    THREAD = "thread", "Thread"


class FandomTier(models.TextChoices):
    """Lifecycle stage of a fandom."""
    EMERGING = "emerging", "Emerging"
    TRENDING = "trending", "Trending"
    EXISTING = "existing", "Existing"


class DemographicTag(models.TextChoices):
    GEN_Y = "gen_y", "Gen Y"
    GEN_Z = "gen_z", "Gen Z"
    ABC = "abc", "ABC"
    CDE = "cde", "CDE"


class MarketSegment(models.TextChoices):
    """Audience split used to filter recommendations."""
    POSTPAID = "postpaid", "Postpaid"
    PREPAID = "prepaid", "Prepaid"
    ALL = "all", "All"


class ScrapeStatus(models.TextChoices):
    """
    Lifecycle of one ingestion attempt.

    Advances pending -> running -> succeeded|failed. Never regresses.
    """
    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class DiscoveryStatus(models.TextChoices):
    """
    Lifecycle of a discovery candidate.

    tracked and cleared are terminal. dismissed may resurface.
    """
    DISCOVERED = "discovered", "Discovered"
    DISMISSED = "dismissed", "Dismissed"
    TRACKED = "tracked", "Tracked"
    CLEARED = "cleared", "Cleared"


class DiscoverySource(models.TextChoices):
    HASHTAG = "hashtag", "Hashtag"
    MENTION = "mention", "Mention"


# Ordered rank of ScrapeRun statuses; a transition may only move forward.
SCRAPE_STATUS_RANK = {
    ScrapeStatus.PENDING: 0,
    ScrapeStatus.RUNNING: 1,
    ScrapeStatus.SUCCEEDED: 2,
    ScrapeStatus.FAILED: 2,
}

TERMINAL_SCRAPE_STATUSES = frozenset({ScrapeStatus.SUCCEEDED, ScrapeStatus.FAILED})

FROZEN_DISCOVERY_STATUSES = frozenset({DiscoveryStatus.TRACKED, DiscoveryStatus.CLEARED})
