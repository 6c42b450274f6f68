"""
Django settings for the FanPulse backend.

- Loads secrets from environment variables
- Database via DATABASE_URL (postgres in production, sqlite locally)
- Pipeline tunables (discovery, recommendations, trends delays) are plain
  settings so they can be overridden per environment or per test
"""

import os
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

# Load .env file if present (for local dev)
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(key: str, default: str = "False") -> bool:
    return os.environ.get(key, default).lower() in ("true", "1", "yes")


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.environ.get(key, default))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.environ.get(key, default))
    except ValueError:
        return default


# =============================================================================
# SECURITY SETTINGS (env-driven)
# =============================================================================

SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY",
    "dev-insecure-key-do-not-use-in-production",
)

DEBUG = _env_bool("DJANGO_DEBUG")

ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")


# =============================================================================
# APPLICATION DEFINITION
# =============================================================================

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # FanPulse apps
    "fanpulse.core",
    "fanpulse.ingestion",
]

MIDDLEWARE = []


# =============================================================================
# DATABASE (via DATABASE_URL)
# =============================================================================

# Default to sqlite for initial setup, but real usage requires postgres
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
)

DATABASES = {
    "default": dj_database_url.parse(
        DATABASE_URL,
        conn_max_age=600,
        conn_health_checks=True,
    )
}


# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


# =============================================================================
# DEFAULT PRIMARY KEY FIELD TYPE
# =============================================================================

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# =============================================================================
# APIFY
# =============================================================================

# Global kill switch. Off by default so local runs never spend credits.
APIFY_ENABLED = _env_bool("APIFY_ENABLED")
APIFY_TOKEN = os.environ.get("APIFY_TOKEN", "")
APIFY_BASE_URL = os.environ.get("APIFY_BASE_URL", "https://api.apify.com")
APIFY_DATASET_FETCH_LIMIT = _env_int("APIFY_DATASET_FETCH_LIMIT", 1000)


# =============================================================================
# REGIONAL INTEREST (Google Trends)
# =============================================================================

TRENDS_SESSION_DELAY_S = _env_float("TRENDS_SESSION_DELAY_S", 1.5)
TRENDS_EXPLORE_DELAY_S = _env_float("TRENDS_EXPLORE_DELAY_S", 2.0)
TRENDS_BATCH_DELAY_S = _env_float("TRENDS_BATCH_DELAY_S", 10.0)
TRENDS_TIMEOUT_S = _env_float("TRENDS_TIMEOUT_S", 15.0)
TRENDS_DEFAULT_GEO = os.environ.get("TRENDS_DEFAULT_GEO", "PH")


# =============================================================================
# NORMALIZATION / INFLUENCERS
# =============================================================================

FANPULSE_INFLUENCER_ENGAGEMENT_WEIGHT = _env_float("FANPULSE_INFLUENCER_ENGAGEMENT_WEIGHT", 0.6)
FANPULSE_INFLUENCER_REACH_WEIGHT = _env_float("FANPULSE_INFLUENCER_REACH_WEIGHT", 0.4)
# Engagement rate treated as "perfect" (100) when normalizing
FANPULSE_INFLUENCER_ENGAGEMENT_CEILING = _env_float("FANPULSE_INFLUENCER_ENGAGEMENT_CEILING", 0.10)
# Follower count treated as "perfect" reach when normalizing (log scale)
FANPULSE_INFLUENCER_REACH_CEILING = _env_int("FANPULSE_INFLUENCER_REACH_CEILING", 10_000_000)


# =============================================================================
# DISCOVERY
# =============================================================================

FANPULSE_DISCOVERY_MIN_OCCURRENCES = _env_int("FANPULSE_DISCOVERY_MIN_OCCURRENCES", 3)
FANPULSE_DISCOVERY_MAX_CANDIDATES = _env_int("FANPULSE_DISCOVERY_MAX_CANDIDATES", 20)
FANPULSE_DISCOVERY_RESURFACE_GROWTH = _env_int("FANPULSE_DISCOVERY_RESURFACE_GROWTH", 5)
FANPULSE_DISCOVERY_SCAN_LIMIT = _env_int("FANPULSE_DISCOVERY_SCAN_LIMIT", 500)
FANPULSE_DISCOVERY_WEIGHTS = {
    "size": _env_float("FANPULSE_DISCOVERY_WEIGHT_SIZE", 1.0),
    "sustainability": _env_float("FANPULSE_DISCOVERY_WEIGHT_SUSTAINABILITY", 1.0),
    "growth": _env_float("FANPULSE_DISCOVERY_WEIGHT_GROWTH", 1.0),
}
FANPULSE_DISCOVERY_CORROBORATION_BONUS = _env_int("FANPULSE_DISCOVERY_CORROBORATION_BONUS", 10)


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

FANPULSE_RECOMMENDATION_WEIGHTS = {
    "growth": _env_float("FANPULSE_RECOMMENDATION_WEIGHT_GROWTH", 0.35),
    "engagement": _env_float("FANPULSE_RECOMMENDATION_WEIGHT_ENGAGEMENT", 0.40),
    "demographic": _env_float("FANPULSE_RECOMMENDATION_WEIGHT_DEMOGRAPHIC", 0.25),
}
FANPULSE_RECOMMENDATION_DEMOGRAPHIC_FLOOR = _env_float("FANPULSE_RECOMMENDATION_DEMOGRAPHIC_FLOOR", 20.0)
# Growth rate that maps to a full growth component (10% period-over-period)
FANPULSE_RECOMMENDATION_GROWTH_CEILING = _env_float("FANPULSE_RECOMMENDATION_GROWTH_CEILING", 0.10)


# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "fanpulse": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
