"""
Django app configuration for FanPulse core.

Owns the canonical schema (fandoms, content, snapshots, influencers,
discoveries, scrape runs).
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "fanpulse.core"
    label = "core"
    verbose_name = "FanPulse Core"
