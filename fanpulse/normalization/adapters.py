"""
Per-platform record shapes.

Scrapers for different platforms (and different versions of the same
scraper) disagree on field names. Each platform gets one RecordShape: an
ordered alias tuple per canonical field, first present alias wins. Dotted
aliases reach into nested objects ("authorMeta.fans").

normalize_record() resolves every alias once and returns plain
dataclasses; nothing downstream looks at raw keys again.

Rules:
- counters: missing -> 0, never None; "1,234" and "1.2K" are accepted;
  a list counts as its length
- hashtags: tag field merged with #tags in the text, '#' stripped,
  case-insensitive dedupe keeping the first spelling
- a record that is not a mapping, or has no external id, raises
  MalformedInputError
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from fanpulse.core.enums import ContentType, Platform
from fanpulse.core.errors import MalformedInputError


Aliases = tuple[str, ...]


@dataclass(frozen=True)
class RecordShape:
    """Alias table for one platform's raw records."""

    platform: str
    external_id: Aliases
    content_type: Callable[[Mapping[str, Any]], str]
    text: Aliases = ()
    url: Aliases = ()
    likes: Aliases = ()
    comments: Aliases = ()
    shares: Aliases = ()
    views: Aliases = ()
    published_at: Aliases = ()
    tags: Aliases = ()
    author_username: Aliases = ()
    author_display_name: Aliases = ()
    author_followers: Aliases = ()
    author_profile_url: Aliases = ()
    author_avatar_url: Aliases = ()
    author_bio: Aliases = ()
    author_location: Aliases = ()
    # Template for profile URLs when the record carries none
    profile_url_template: str | None = None
    # Follower count of the tracked account itself
    profile_followers: Aliases = ()
    excluded_authors: frozenset[str] = frozenset()


@dataclass
class NormalizedContent:
    platform: str
    external_id: str
    content_type: str
    text: str = ""
    url: str = ""
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0
    published_at: datetime | None = None
    hashtags: list[str] = field(default_factory=list)
    author_username: str = ""
    author_followers: int | None = None

    @property
    def engagement(self) -> int:
        return self.likes + self.comments + self.shares


@dataclass
class NormalizedAuthor:
    username: str
    display_name: str = ""
    followers: int | None = None
    profile_url: str = ""
    avatar_url: str = ""
    bio: str = ""
    location: str = ""


@dataclass
class NormalizedRecord:
    content: NormalizedContent
    author: NormalizedAuthor | None = None
    profile_followers: int | None = None


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def _safe_get(data: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Traverse a dotted path, returning default if any key is missing."""
    result: Any = data
    for key in path.split("."):
        if not isinstance(result, Mapping):
            return default
        result = result.get(key)
        if result is None:
            return default
    return result


def _resolve(raw: Mapping[str, Any], aliases: Aliases) -> Any:
    """First alias with a present value. Blank strings count as absent."""
    for alias in aliases:
        value = _safe_get(raw, alias)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


_SUFFIX_MULTIPLIERS = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


def to_count(value: Any, field_name: str = "count") -> int:
    """
    Coerce a raw counter to a non-negative int.

    Raises:
        MalformedInputError: If the value cannot be read as a count
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        return _finite_count(value, field_name, value)
    if isinstance(value, (list, tuple)):
        return len(value)
    if isinstance(value, Mapping) and "count" in value:
        return to_count(value["count"], field_name)
    if isinstance(value, str):
        text = value.strip().lower().replace(",", "").replace("_", "").replace(" ", "")
        multiplier = 1
        if text and text[-1] in _SUFFIX_MULTIPLIERS:
            multiplier = _SUFFIX_MULTIPLIERS[text[-1]]
            text = text[:-1]
        try:
            number = float(text) * multiplier
        except ValueError:
            pass
        else:
            return _finite_count(number, field_name, value)
    raise MalformedInputError(f"Unreadable {field_name}: {value!r}")


def _finite_count(number: float, field_name: str, raw: Any) -> int:
    # NaN and infinities (including overflowing strings like "1e999")
    if not math.isfinite(number):
        raise MalformedInputError(f"Unreadable {field_name}: {raw!r}")
    return max(0, int(number))


def _to_optional_count(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return to_count(value)
    except MalformedInputError:
        return None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


_RELATIVE_DATE_RE = re.compile(
    r"^(\d+)\s+(second|minute|hour|day|week|month|year)s?\s+ago$", re.IGNORECASE
)

_RELATIVE_UNITS = {
    "second": timedelta(seconds=1),
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

_DATE_FORMATS = (
    "%b %d, %Y",  # Feb 5, 2026
    "%B %d, %Y",  # February 5, 2026
    "%d %b %Y",  # 5 Feb 2026
    "%a %b %d %H:%M:%S %z %Y",  # Twitter: Wed Oct 10 20:19:24 +0000 2018
    "%Y-%m-%d %H:%M:%S",
)


def parse_published_at(value: Any, now: datetime | None = None) -> datetime | None:
    """
    Parse a platform timestamp into an aware UTC datetime.

    Accepts ISO-8601, epoch seconds or milliseconds, "Feb 5, 2026",
    "Premiered Feb 5, 2026", Twitter's legacy format and "3 days ago".
    Returns None when nothing matches.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_epoch(value)

    text = str(value).strip()
    if text.isdigit():
        return _from_epoch(int(text))
    for prefix in ("Premiered ", "Streamed live on ", "Published on "):
        if text.startswith(prefix):
            text = text[len(prefix):].strip()

    match = _RELATIVE_DATE_RE.match(text)
    if match:
        now = now or datetime.now(timezone.utc)
        return now - int(match.group(1)) * _RELATIVE_UNITS[match.group(2).lower()]

    try:
        iso = text[:-1] + "+00:00" if text.endswith("Z") else text
        parsed = datetime.fromisoformat(iso)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _from_epoch(value: float) -> datetime | None:
    # Millisecond timestamps are 13 digits
    seconds = value / 1000 if value > 1e11 else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


_HASHTAG_RE = re.compile(r"#(\w+)")


def extract_hashtags_from_text(text: str) -> list[str]:
    """Extract hashtags from text using regex."""
    if not text:
        return []
    return list(dict.fromkeys(_HASHTAG_RE.findall(text)))


def _tag_name(tag: Any) -> str:
    if isinstance(tag, Mapping):
        tag = tag.get("name") or tag.get("title") or tag.get("text") or ""
    return str(tag).strip().lstrip("#").strip()


def merge_hashtags(tag_field: Any, text: str) -> list[str]:
    """Tag field first, then text hashtags; case-insensitive dedupe."""
    candidates: list[str] = []
    if isinstance(tag_field, (list, tuple)):
        candidates.extend(_tag_name(t) for t in tag_field)
    elif isinstance(tag_field, str):
        candidates.extend(_tag_name(t) for t in re.split(r"[\s,]+", tag_field))
    candidates.extend(extract_hashtags_from_text(text))

    seen: set[str] = set()
    merged = []
    for tag in candidates:
        key = tag.lower()
        if tag and key not in seen:
            seen.add(key)
            merged.append(tag)
    return merged


# =============================================================================
# RECORD SHAPES
# =============================================================================


def _instagram_type(raw: Mapping[str, Any]) -> str:
    kind = str(raw.get("type") or raw.get("productType") or "").lower()
    return ContentType.REEL if kind in ("video", "clips", "reel") else ContentType.POST


def _constant(content_type: str) -> Callable[[Mapping[str, Any]], str]:
    return lambda _raw: content_type


RECORD_SHAPES: dict[str, RecordShape] = {
    Platform.INSTAGRAM: RecordShape(
        platform=Platform.INSTAGRAM,
        external_id=("id", "shortCode"),
        content_type=_instagram_type,
        text=("caption",),
        url=("url",),
        likes=("likesCount", "likes"),
        comments=("commentsCount", "comments"),
        views=("videoViewCount", "videoPlayCount", "views"),
        published_at=("timestamp",),
        tags=("hashtags",),
        author_username=("ownerUsername",),
        author_display_name=("ownerFullName",),
        author_followers=("ownerFollowerCount", "ownerFollowersCount"),
        author_avatar_url=("ownerProfilePicUrl",),
        author_location=("locationName",),
        profile_url_template="https://www.instagram.com/{username}",
        profile_followers=("ownerFollowerCount", "ownerFollowersCount"),
    ),
    Platform.TIKTOK: RecordShape(
        platform=Platform.TIKTOK,
        external_id=("id",),
        content_type=_constant(ContentType.VIDEO),
        text=("text", "desc"),
        url=("webVideoUrl", "url"),
        likes=("diggCount", "likes"),
        comments=("commentCount", "comments"),
        shares=("shareCount", "shares"),
        views=("playCount", "views"),
        published_at=("createTimeISO", "createTime"),
        tags=("hashtags",),
        author_username=("authorMeta.name", "author.uniqueId", "authorName"),
        author_display_name=("authorMeta.nickName", "authorMeta.nickname", "author.nickname"),
        author_followers=("authorMeta.fans", "authorMeta.followers", "author.followerCount"),
        author_avatar_url=("authorMeta.avatar",),
        author_bio=("authorMeta.signature",),
        author_location=("authorMeta.region", "author.region"),
        profile_url_template="https://www.tiktok.com/@{username}",
        profile_followers=("authorMeta.fans", "authorMeta.followers"),
    ),
    Platform.TWITTER: RecordShape(
        platform=Platform.TWITTER,
        external_id=("id", "id_str"),
        content_type=_constant(ContentType.TWEET),
        text=("full_text", "text"),
        url=("url", "twitterUrl"),
        likes=("favorite_count", "likeCount"),
        comments=("reply_count", "replyCount"),
        shares=("retweet_count", "retweetCount"),
        views=("views_count", "viewCount"),
        published_at=("created_at", "createdAt"),
        tags=("entities.hashtags",),
        author_username=("user.screen_name", "author.userName", "username"),
        author_display_name=("user.name", "author.name", "author.displayName"),
        author_followers=("user.followers_count", "author.followers"),
        author_avatar_url=(
            "user.profile_image_url_https",
            "author.profilePicture",
            "author.profileImageUrl",
        ),
        author_bio=("user.description", "author.description"),
        author_location=("user.location", "author.location"),
        profile_url_template="https://x.com/{username}",
    ),
    Platform.YOUTUBE: RecordShape(
        platform=Platform.YOUTUBE,
        external_id=("id",),
        content_type=_constant(ContentType.VIDEO),
        text=("title",),
        url=("url",),
        likes=("likes",),
        comments=("commentsCount",),
        views=("viewCount", "views"),
        published_at=("date", "uploadDate"),
        tags=("hashtags",),
        author_username=("channelName", "channelTitle"),
        author_display_name=("channelName", "channelTitle"),
        author_followers=("channelSubscribers", "numberOfSubscribers"),
        author_profile_url=("channelUrl",),
        author_avatar_url=("channelThumbnail",),
        author_location=("channelCountry",),
        profile_followers=("channelSubscribers", "numberOfSubscribers"),
    ),
    Platform.FACEBOOK: RecordShape(
        platform=Platform.FACEBOOK,
        external_id=("postId", "id"),
        content_type=_constant(ContentType.POST),
        text=("text", "message"),
        url=("url", "topLevelUrl"),
        likes=("likes", "reactionsCount"),
        comments=("comments", "commentsCount"),
        shares=("shares", "sharesCount"),
        views=("viewsCount", "views"),
        published_at=("time", "timestamp"),
        author_username=("pageName", "userName"),
        author_display_name=("pageName",),
        author_followers=("pageLikes", "pageFollowers"),
        author_profile_url=("pageUrl",),
        author_location=("pageLocation", "location"),
        profile_followers=("pageFollowers", "pageLikes"),
    ),
    Platform.REDDIT: RecordShape(
        platform=Platform.REDDIT,
        external_id=("id", "parsedId"),
        content_type=_constant(ContentType.THREAD),
        text=("title", "body"),
        url=("url",),
        likes=("upVotes", "score"),
        comments=("numberOfComments", "numComments"),
        published_at=("createdAt", "created_utc"),
        author_username=("author", "username"),
        author_followers=("authorKarma",),
        profile_url_template="https://www.reddit.com/user/{username}",
        excluded_authors=frozenset({"[deleted]", "AutoModerator"}),
    ),
}


def get_record_shape(platform: str) -> RecordShape:
    """
    Raises:
        ValueError: If the platform has no record shape
    """
    try:
        return RECORD_SHAPES[platform]
    except KeyError:
        raise ValueError(f"No record shape for platform: {platform}") from None


def normalize_record(
    platform: str,
    raw: Any,
    *,
    now: datetime | None = None,
) -> NormalizedRecord:
    """
    Resolve one raw record into canonical content (+ author, if any).

    Raises:
        MalformedInputError: If the record is not a mapping, has no
            external id, or carries an unreadable counter
    """
    shape = get_record_shape(platform)
    if not isinstance(raw, Mapping):
        raise MalformedInputError(f"Record is not an object: {type(raw).__name__}")

    external_id = _resolve(raw, shape.external_id)
    if external_id is None:
        raise MalformedInputError("Record has no external id")

    text = _to_text(_resolve(raw, shape.text))
    author = _extract_author(shape, raw)

    content = NormalizedContent(
        platform=shape.platform,
        external_id=str(external_id).strip(),
        content_type=shape.content_type(raw),
        text=text,
        url=_to_text(_resolve(raw, shape.url)),
        likes=to_count(_resolve(raw, shape.likes), "likes"),
        comments=to_count(_resolve(raw, shape.comments), "comments"),
        shares=to_count(_resolve(raw, shape.shares), "shares"),
        views=to_count(_resolve(raw, shape.views), "views"),
        published_at=parse_published_at(_resolve(raw, shape.published_at), now=now),
        hashtags=merge_hashtags(_resolve(raw, shape.tags), text),
        author_username=author.username if author else "",
        author_followers=author.followers if author else None,
    )
    return NormalizedRecord(
        content=content,
        author=author,
        profile_followers=_to_optional_count(_resolve(raw, shape.profile_followers)),
    )


def _extract_author(shape: RecordShape, raw: Mapping[str, Any]) -> NormalizedAuthor | None:
    username = _to_text(_resolve(raw, shape.author_username)).lstrip("@")
    if not username or username in shape.excluded_authors:
        return None

    profile_url = _to_text(_resolve(raw, shape.author_profile_url))
    if not profile_url and shape.profile_url_template:
        profile_url = shape.profile_url_template.format(username=username)

    return NormalizedAuthor(
        username=username,
        display_name=_to_text(_resolve(raw, shape.author_display_name)),
        followers=_to_optional_count(_resolve(raw, shape.author_followers)),
        profile_url=profile_url,
        avatar_url=_to_text(_resolve(raw, shape.author_avatar_url)),
        bio=_to_text(_resolve(raw, shape.author_bio)),
        location=_to_text(_resolve(raw, shape.author_location)),
    )
