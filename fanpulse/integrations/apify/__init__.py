"""
Apify integration.

Provides:
- ApifyClient: HTTP client for Apify API v2
- ApifyError, ApifyTimeoutError: failures (both TransientNetworkError)
"""

from fanpulse.integrations.apify.client import (
    ApifyClient,
    ApifyError,
    ApifyTimeoutError,
    RunInfo,
)

__all__ = [
    "ApifyClient",
    "ApifyError",
    "ApifyTimeoutError",
    "RunInfo",
]
