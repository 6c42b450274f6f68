"""
FanPulse pipeline DTOs.

Pydantic v2 BaseModels for the non-persistent shapes that cross module
boundaries: ingestion requests and results, discovery candidates and
recommendations.

Enum values come straight from fanpulse/core/enums.py. Django TextChoices
inherit from str and Enum, so Pydantic validates them directly.
"""

from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fanpulse.actors.registry import is_trends_source
from fanpulse.core.enums import (
    DiscoverySource,
    DiscoveryStatus,
    FandomTier,
    MarketSegment,
    Platform,
)


# =============================================================================
# DISCOVERY
# =============================================================================


class DiscoveryCandidate(BaseModel):
    """
    A candidate fandom mined from raw signal.

    Scores are integers in 0-100. id and status are set once the candidate
    has been written to the store.
    """
    name: str
    normalized_name: str
    source: DiscoverySource = DiscoverySource.HASHTAG
    platforms: list[str] = Field(default_factory=list)
    occurrences: int = 0
    distinct_authors: int = 0
    estimated_reach: int = 0
    size_score: int = Field(default=0, ge=0, le=100)
    sustainability_score: int = Field(default=0, ge=0, le=100)
    growth_score: int = Field(default=0, ge=0, le=100)
    overall_score: int = Field(default=0, ge=0, le=100)
    confidence: int = Field(default=0, ge=0, le=100)
    suggested_tier: FandomTier = FandomTier.EMERGING
    suggested_group: str = ""
    sample_content: list[str] = Field(default_factory=list)
    evidence: dict[str, Any] = Field(default_factory=dict)
    id: UUID | None = None
    status: DiscoveryStatus | None = None

    def store_fields(self) -> dict[str, Any]:
        """Fields written by upsert_discovery (identity and lifecycle excluded)."""
        return self.model_dump(
            mode="json",
            exclude={"normalized_name", "id", "status"},
        )


# =============================================================================
# INGESTION
# =============================================================================


class IngestRequest(BaseModel):
    """
    Inbound request to ingest one dataset.

    fandom_id and platform are required unless source_job_id names a
    trends source, whose records carry their own keywords.
    """
    dataset_handle: str = Field(min_length=1)
    fandom_id: UUID | None = None
    platform: Platform | None = None
    source_job_id: str = ""

    @model_validator(mode="after")
    def check_target_present(self) -> "IngestRequest":
        if self.is_trends:
            return self
        if self.fandom_id is None or self.platform is None:
            raise ValueError("fandom_id and platform are required for content datasets")
        return self

    @property
    def is_trends(self) -> bool:
        return is_trends_source(self.source_job_id)


class IngestResult(BaseModel):
    """
    Outcome of one ingest call.

    items_count counts distinct content items (or trend rows) written.
    discoveries is always a list. On failure, error carries a readable
    message and cause the original exception (never serialized).
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    items_count: int = 0
    items_created: int = 0
    influencer_count: int = 0
    discoveries: list[DiscoveryCandidate] = Field(default_factory=list)
    error: str | None = None
    cause: Exception | None = Field(default=None, exclude=True)

    @classmethod
    def failed(cls, error: str, cause: Exception | None = None) -> "IngestResult":
        return cls(success=False, error=error, cause=cause)


class ScrapeFailure(BaseModel):
    """One fandom platform whose scraper could not be started."""
    fandom_id: UUID
    platform: str
    error: str


class ScrapeSweepResult(BaseModel):
    """
    Outcome of one scrape sweep.

    started holds the dataset ids of the pending runs. skipped counts
    platforms with no registered scraper.
    """
    started: list[str] = Field(default_factory=list)
    failures: list[ScrapeFailure] = Field(default_factory=list)
    skipped: int = 0


# =============================================================================
# RECOMMENDATIONS
# =============================================================================


ScoreDriver = Literal["growth", "engagement", "demographic"]


class Recommendation(BaseModel):
    """Campaign suggestion for one (fandom, segment) pair. Never persisted."""
    fandom_id: UUID
    fandom_name: str
    tier: FandomTier
    segment: MarketSegment
    score: float = Field(ge=0, le=100)
    growth_component: float = 0.0
    engagement_component: float = 0.0
    demographic_component: float = 0.0
    dominant_driver: ScoreDriver
    suggested_platform: Platform
    suggested_action: str
    rationale: str
    estimated_reach: int = 0
