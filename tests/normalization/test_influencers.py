"""
Tests for influencer extraction and relevance scoring.
"""

import pytest

from fanpulse.normalization.adapters import NormalizedAuthor, NormalizedContent, NormalizedRecord
from fanpulse.normalization.influencers import (
    RelevanceWeights,
    extract_influencers,
    relevance_score,
)


def record(external_id, username, followers=None, likes=0, location=""):
    return NormalizedRecord(
        content=NormalizedContent(
            platform="tiktok",
            external_id=external_id,
            content_type="video",
            likes=likes,
            author_username=username,
            author_followers=followers,
        ),
        author=NormalizedAuthor(username=username, followers=followers, location=location),
    )


@pytest.mark.unit
class TestRelevanceScore:
    """Score blends engagement and reach, clipped to 0..100."""

    def test_bounds(self):
        assert relevance_score(0.0, 0) == 0.0
        assert relevance_score(1.0, 10_000_000) == 100.0

    def test_engagement_dominates(self):
        """Same reach, higher engagement rate scores higher."""
        assert relevance_score(0.08, 5000) > relevance_score(0.01, 5000)

    def test_custom_weights(self):
        """With all weight on reach, engagement is irrelevant."""
        weights = RelevanceWeights(engagement=0.0, reach=1.0)
        assert relevance_score(0.0, 50_000, weights) == relevance_score(0.5, 50_000, weights)


@pytest.mark.unit
class TestExtractInfluencers:
    """One profile per author with a follower count."""

    def test_groups_by_username_case_insensitive(self):
        """Posts from the same author aggregate."""
        profiles = extract_influencers([
            record("1", "Blooms_PH", followers=1000, likes=40),
            record("2", "blooms_ph", followers=1200, likes=60),
        ])
        assert len(profiles) == 1
        profile = profiles[0]
        assert profile.post_count == 2
        assert profile.followers == 1200
        assert profile.username == "blooms_ph"
        assert profile.engagement_rate == pytest.approx(50 / 1200)

    def test_author_without_followers_skipped(self):
        """No resolvable follower count, no influencer."""
        assert extract_influencers([record("1", "ghost", followers=None, likes=10)]) == []

    def test_authorless_records_ignored(self):
        bare = NormalizedRecord(
            content=NormalizedContent(platform="reddit", external_id="r1", content_type="thread")
        )
        assert extract_influencers([bare]) == []

    def test_location_backfilled(self):
        """Location comes from any record that has one."""
        profiles = extract_influencers([
            record("1", "atin", followers=500),
            record("2", "atin", followers=400, location="Cebu"),
        ])
        assert profiles[0].location == "Cebu"

    def test_zero_followers_rate_guard(self):
        """Zero followers divides by one."""
        [profile] = extract_influencers([record("1", "newbie", followers=0, likes=3)])
        assert profile.engagement_rate == 3.0
        assert 0 <= profile.relevance_score <= 100
