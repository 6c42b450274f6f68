"""
Pytest configuration for FanPulse tests.

DJANGO_SETTINGS_MODULE comes from pyproject.toml (fanpulse.settings_test:
SQLite in-memory, Apify disabled, zero trends delays).
"""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def enable_apify(settings):
    """Enable APIFY_ENABLED for tests that need to call client methods."""
    settings.APIFY_ENABLED = True
    yield
    settings.APIFY_ENABLED = False


@pytest.fixture
def store():
    from fanpulse.core.store import DjangoFandomStore
    return DjangoFandomStore()


@pytest.fixture
def scraped_at():
    return datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_fandom(db):
    """Factory for tracked fandoms, optionally registered on platforms."""
    from fanpulse.core.models import Fandom, FandomPlatform

    def _make(name, *, tier="trending", tags=None, group="", platforms=(), followers=0, **extra):
        slug = extra.pop("slug", name.lower().replace(" ", "-").replace("'", ""))
        fandom = Fandom.objects.create(
            name=name,
            slug=slug,
            tier=tier,
            demographic_tags=tags or [],
            fandom_group=group,
            **extra,
        )
        for platform in platforms:
            FandomPlatform.objects.create(
                fandom=fandom,
                platform=platform,
                handle=slug,
                followers=followers,
            )
        return fandom

    return _make
