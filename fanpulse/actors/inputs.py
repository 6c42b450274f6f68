"""
Actor input builders.

Each builder takes the tracked handle, an optional search keyword and the
result cap, and returns the JSON input for the actor run.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote


def _strip_at(handle: str) -> str:
    return handle.strip().lstrip("@")


def build_instagram_input(handle: str, *, keyword: str | None = None, limit: int) -> dict[str, Any]:
    return {
        "directUrls": [f"https://www.instagram.com/{_strip_at(handle)}/"],
        "resultsType": "posts",
        "resultsLimit": limit,
    }


def build_tiktok_input(handle: str, *, keyword: str | None = None, limit: int) -> dict[str, Any]:
    return {
        "profiles": [_strip_at(handle)],
        "resultsPerPage": limit,
        "shouldDownloadVideos": False,
    }


def build_facebook_input(handle: str, *, keyword: str | None = None, limit: int) -> dict[str, Any]:
    return {
        "startUrls": [{"url": f"https://www.facebook.com/{_strip_at(handle)}"}],
        "resultsLimit": limit,
    }


def build_youtube_input(handle: str, *, keyword: str | None = None, limit: int) -> dict[str, Any]:
    return {
        "startUrls": [{"url": f"https://www.youtube.com/@{_strip_at(handle)}"}],
        "maxResults": limit,
        "type": "video",
    }


def build_twitter_input(handle: str, *, keyword: str | None = None, limit: int) -> dict[str, Any]:
    """Twitter is searched by keyword when one is given, else by handle."""
    return {
        "searchTerms": [keyword or handle],
        "maxTweets": limit,
        "searchMode": "live",
    }


def build_reddit_input(handle: str, *, keyword: str | None = None, limit: int) -> dict[str, Any]:
    query = quote(keyword or handle)
    return {
        "startUrls": [
            {"url": f"https://www.reddit.com/search.json?q={query}&sort=new&limit={limit}"}
        ],
        "maxItems": limit,
        "sort": "new",
    }


def build_google_trends_input(handle: str, *, keyword: str | None = None, limit: int) -> dict[str, Any]:
    """Trends jobs carry their own keyword list; handle is unused."""
    return {
        "searchTerms": [keyword] if keyword else [],
        "geo": "PH",
        "timeRange": "past12Months",
        "category": 0,
    }
