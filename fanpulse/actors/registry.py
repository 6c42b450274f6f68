"""
Actor Registry.

Maps a source name (platform, or "google_trends") to the Apify actor that
scrapes it and the builder for its input.

Registry entries (7):
1. instagram      posts of a profile
2. tiktok         videos of a profile
3. facebook       page posts
4. youtube        channel videos
5. twitter        keyword/handle search
6. reddit         keyword/handle search via public JSON
7. google_trends  national interest over time (trends path, not content)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from fanpulse.actors.caps import cap_for
from fanpulse.actors.inputs import (
    build_facebook_input,
    build_google_trends_input,
    build_instagram_input,
    build_reddit_input,
    build_tiktok_input,
    build_twitter_input,
    build_youtube_input,
)

KIND_CONTENT = "content"
KIND_TRENDS = "trends"

TRENDS_SOURCE = "google_trends"


@dataclass(frozen=True)
class ActorSpec:
    """
    Specification for an Apify actor.

    Attributes:
        source: Registry key (platform name or "google_trends")
        platform: Platform the produced content belongs to (None for trends)
        actor_id: Apify actor ID in "owner/name" form
        description: What the actor scrapes
        build_input: Callable(handle, *, keyword, limit) -> actor input dict
        cap_fields: Input keys that are limit-like
        kind: KIND_CONTENT or KIND_TRENDS
    """

    source: str
    platform: str | None
    actor_id: str
    description: str
    build_input: Callable[..., dict[str, Any]]
    cap_fields: list[str]
    kind: str = KIND_CONTENT


ACTOR_REGISTRY: dict[str, ActorSpec] = {
    "instagram": ActorSpec(
        source="instagram",
        platform="instagram",
        actor_id="menoob/pldt-instagram-scraper",
        description="Scrapes Instagram profiles, posts, and hashtags",
        build_input=build_instagram_input,
        cap_fields=["resultsLimit"],
    ),
    "tiktok": ActorSpec(
        source="tiktok",
        platform="tiktok",
        actor_id="menoob/pldt-tiktok-scraper",
        description="Scrapes TikTok profiles, videos, and hashtags",
        build_input=build_tiktok_input,
        cap_fields=["resultsPerPage"],
    ),
    "facebook": ActorSpec(
        source="facebook",
        platform="facebook",
        actor_id="menoob/facebook-banking-scraper",
        description="Scrapes Facebook page posts and engagement",
        build_input=build_facebook_input,
        cap_fields=["resultsLimit"],
    ),
    "youtube": ActorSpec(
        source="youtube",
        platform="youtube",
        actor_id="menoob/pldt-youtube-scraper",
        description="Scrapes channel videos via page data extraction",
        build_input=build_youtube_input,
        cap_fields=["maxResults"],
    ),
    "twitter": ActorSpec(
        source="twitter",
        platform="twitter",
        actor_id="menoob/pldt-twitter-scraper",
        description="Scrapes tweets by keyword or hashtag",
        build_input=build_twitter_input,
        cap_fields=["maxTweets"],
    ),
    "reddit": ActorSpec(
        source="reddit",
        platform="reddit",
        actor_id="menoob/pldt-reddit-scraper",
        description="Scrapes Reddit threads via the public JSON API",
        build_input=build_reddit_input,
        cap_fields=["maxItems"],
    ),
    TRENDS_SOURCE: ActorSpec(
        source=TRENDS_SOURCE,
        platform=None,
        actor_id="menoob/pldt-google-trends-scraper",
        description="Scrapes Google Trends interest over time",
        build_input=build_google_trends_input,
        cap_fields=[],
        kind=KIND_TRENDS,
    ),
}


def _canonical_actor_id(actor_id: str) -> str:
    # Apify accepts both "owner/name" and "owner~name"
    return actor_id.strip().replace("~", "/").lower()


def get_actor_spec(source: str) -> ActorSpec | None:
    return ACTOR_REGISTRY.get(source)


def find_spec_by_actor_id(actor_id: str) -> ActorSpec | None:
    """Look a spec up by its Apify actor id, in either separator form."""
    wanted = _canonical_actor_id(actor_id)
    for spec in ACTOR_REGISTRY.values():
        if _canonical_actor_id(spec.actor_id) == wanted:
            return spec
    return None


def is_trends_source(source_job_id: str | None) -> bool:
    """
    True if a job identifier names a trends-type source.

    Accepts a registry key ("google_trends"), an actor id, or any identifier
    mentioning google-trends.
    """
    if not source_job_id:
        return False
    spec = get_actor_spec(source_job_id) or find_spec_by_actor_id(source_job_id)
    if spec is not None:
        return spec.kind == KIND_TRENDS
    normalized = source_job_id.lower().replace("_", "-")
    return "google-trends" in normalized


def build_actor_input(
    source: str,
    handle: str,
    keyword: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Build the actor input for a source, applying the source's cap by default.

    Raises:
        KeyError: If the source is not registered
    """
    spec = ACTOR_REGISTRY[source]
    return spec.build_input(handle, keyword=keyword, limit=limit or cap_for(source))
