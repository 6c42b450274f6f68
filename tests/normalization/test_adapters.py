"""
Tests for per-platform record shapes.

Field aliasing, counter coercion, timestamps and hashtag merging.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fanpulse.core.enums import ContentType
from fanpulse.core.errors import MalformedInputError
from fanpulse.normalization.adapters import (
    get_record_shape,
    merge_hashtags,
    normalize_record,
    parse_published_at,
    to_count,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestFieldAliasing:
    """First present alias wins; absent counters are zero."""

    def test_tiktok_play_count_is_views(self):
        """playCount=1000 with no views field yields 1000 views."""
        record = normalize_record("tiktok", {"id": "t1", "playCount": 1000})
        assert record.content.views == 1000

    def test_missing_counters_default_to_zero(self):
        """A record with neither alias yields 0, never None."""
        record = normalize_record("tiktok", {"id": "t1"})
        content = record.content
        assert (content.views, content.likes, content.comments, content.shares) == (0, 0, 0, 0)

    def test_first_alias_wins(self):
        """diggCount is preferred over likes."""
        record = normalize_record("tiktok", {"id": "t1", "diggCount": 7, "likes": 99})
        assert record.content.likes == 7

    def test_nested_author_fields(self):
        """Dotted aliases reach into authorMeta."""
        record = normalize_record("tiktok", {
            "id": "t1",
            "authorMeta": {"name": "blooms_ph", "nickName": "Blooms PH", "fans": 12000},
        })
        assert record.author.username == "blooms_ph"
        assert record.author.display_name == "Blooms PH"
        assert record.author.followers == 12000
        assert record.author.profile_url == "https://www.tiktok.com/@blooms_ph"
        assert record.profile_followers == 12000

    def test_instagram_reel_type(self):
        """Instagram video posts are reels."""
        record = normalize_record("instagram", {"id": "i1", "type": "Video", "likesCount": 3})
        assert record.content.content_type == ContentType.REEL
        assert record.content.likes == 3

    def test_twitter_shape(self):
        """Twitter records map retweets to shares."""
        record = normalize_record("twitter", {
            "id_str": "99",
            "full_text": "Go #SB19",
            "favorite_count": 4,
            "retweet_count": 2,
            "user": {"screen_name": "atin_ph", "followers_count": 300},
        })
        assert record.content.external_id == "99"
        assert record.content.content_type == ContentType.TWEET
        assert record.content.shares == 2
        assert record.content.author_username == "atin_ph"

    def test_reddit_deleted_author_dropped(self):
        """[deleted] authors are not authors."""
        record = normalize_record("reddit", {"id": "r1", "title": "hi", "author": "[deleted]"})
        assert record.author is None
        assert record.content.author_username == ""

    def test_unknown_platform_raises(self):
        """Platforms without a shape are rejected."""
        with pytest.raises(ValueError):
            get_record_shape("myspace")


@pytest.mark.unit
class TestMalformedRecords:
    """Records that cannot be read raise MalformedInputError."""

    def test_not_a_mapping(self):
        with pytest.raises(MalformedInputError):
            normalize_record("tiktok", ["not", "a", "dict"])

    def test_missing_external_id(self):
        with pytest.raises(MalformedInputError):
            normalize_record("tiktok", {"playCount": 5})

    def test_blank_external_id(self):
        with pytest.raises(MalformedInputError):
            normalize_record("tiktok", {"id": "   "})

    def test_unreadable_counter(self):
        with pytest.raises(MalformedInputError):
            normalize_record("tiktok", {"id": "t1", "diggCount": "lots"})

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), "1e999"])
    def test_non_finite_counter(self, raw):
        with pytest.raises(MalformedInputError):
            normalize_record("tiktok", {"id": "t1", "playCount": raw})

    def test_non_finite_follower_count_dropped(self):
        """An unreadable optional follower figure is treated as missing."""
        record = normalize_record(
            "tiktok", {"id": "t1", "authorMeta": {"name": "fan_one", "fans": float("nan")}}
        )
        assert record.profile_followers is None


@pytest.mark.unit
class TestToCount:
    """Counter coercion."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 0),
            (12, 12),
            (3.7, 3),
            (-5, 0),
            ("1,234", 1234),
            ("1.2K", 1200),
            ("3M", 3_000_000),
            ([1, 2, 3], 3),
            ({"count": 9}, 9),
        ],
    )
    def test_values(self, raw, expected):
        assert to_count(raw) == expected

    @pytest.mark.parametrize(
        "raw", [float("nan"), float("inf"), float("-inf"), "1e999", "inf", "nan", "9e999k"]
    )
    def test_non_finite_rejected(self, raw):
        with pytest.raises(MalformedInputError):
            to_count(raw, "likes")


@pytest.mark.unit
class TestParsePublishedAt:
    """Timestamp formats seen across scrapers."""

    def test_iso_with_z(self):
        assert parse_published_at("2025-03-01T08:30:00.000Z") == datetime(
            2025, 3, 1, 8, 30, tzinfo=timezone.utc
        )

    def test_epoch_seconds_and_millis(self):
        expected = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert parse_published_at(1735689600) == expected
        assert parse_published_at(1735689600000) == expected
        assert parse_published_at("1735689600") == expected

    def test_premiered_prefix(self):
        assert parse_published_at("Premiered Feb 5, 2025") == datetime(
            2025, 2, 5, tzinfo=timezone.utc
        )

    def test_relative(self):
        assert parse_published_at("3 days ago", now=NOW) == NOW - timedelta(days=3)

    def test_twitter_legacy(self):
        parsed = parse_published_at("Wed Oct 10 20:19:24 +0000 2018")
        assert parsed == datetime(2018, 10, 10, 20, 19, 24, tzinfo=timezone.utc)

    def test_unparseable(self):
        assert parse_published_at("sometime") is None
        assert parse_published_at("") is None


@pytest.mark.unit
class TestHashtags:
    """Tag field and text hashtags merge, '#' stripped, case-insensitive dedupe."""

    def test_merge_keeps_first_spelling(self):
        tags = merge_hashtags([{"name": "BINI"}, "#Blooms"], "Love #bini and #PPop")
        assert tags == ["BINI", "Blooms", "PPop"]

    def test_string_tag_field(self):
        assert merge_hashtags("#sb19, #atin", "") == ["sb19", "atin"]

    def test_text_only(self):
        record = normalize_record("tiktok", {"id": "t1", "text": "Concert night #SB19 #PPop"})
        assert record.content.hashtags == ["SB19", "PPop"]
