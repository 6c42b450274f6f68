"""
Guardrails for external spend.

All Apify API calls go through require_apify_enabled(). With APIFY_ENABLED
false (the default) any call fails fast with ApifyDisabledError.
"""

from __future__ import annotations

import logging

from django.conf import settings

logger = logging.getLogger(__name__)


class ApifyDisabledError(Exception):
    """Raised when an Apify API call is attempted but APIFY_ENABLED=false."""

    def __init__(self, message: str = "Apify is disabled (APIFY_ENABLED=false)"):
        super().__init__(message)


def is_apify_enabled() -> bool:
    """
    Check if Apify API calls are enabled.

    Default is False (safe). Must be explicitly enabled for live calls.
    """
    return getattr(settings, "APIFY_ENABLED", False)


def require_apify_enabled() -> None:
    """
    Fail fast if Apify calls are disabled.

    Raises:
        ApifyDisabledError: If APIFY_ENABLED is not true
    """
    if not is_apify_enabled():
        logger.warning("Blocked Apify call: APIFY_ENABLED is false")
        raise ApifyDisabledError(
            "Apify API calls are disabled. Set APIFY_ENABLED=true to enable. "
            "This guardrail prevents accidental spend during development."
        )
