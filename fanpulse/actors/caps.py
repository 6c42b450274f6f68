"""
Per-platform scrape caps.

The cap is passed both as the actor's result limit and as the
dataset-fetch limit. Each cap can be overridden with
FANPULSE_CAP_<PLATFORM> (e.g. FANPULSE_CAP_TIKTOK=50).
"""

from __future__ import annotations

import os
from functools import lru_cache


DEFAULT_CAPS = {
    "instagram": 20,
    "tiktok": 20,
    "facebook": 20,
    "youtube": 20,
    "twitter": 20,
    "reddit": 20,
    "google_trends": 10,
}

# Unknown sources get a conservative default
FALLBACK_CAP = 20


def _env_key(source: str) -> str:
    return f"FANPULSE_CAP_{source.upper()}"


def _parse_int_env(key: str, default: int) -> int:
    """Parse an environment variable as an integer, returning default if not set or invalid."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        parsed = int(value)
        # Caps must be positive
        return parsed if parsed > 0 else default
    except ValueError:
        return default


@lru_cache(maxsize=1)
def _load_caps() -> dict[str, int]:
    """Caps with environment overrides applied. Cleared by clear_caps_cache()."""
    return {
        source: _parse_int_env(_env_key(source), default)
        for source, default in DEFAULT_CAPS.items()
    }


def cap_for(source: str) -> int:
    """Return the result cap for a source (platform name or "google_trends")."""
    return _load_caps().get(source, FALLBACK_CAP)


def clear_caps_cache() -> None:
    """Clear the caps cache. Call this after changing environment variables in tests."""
    _load_caps.cache_clear()
