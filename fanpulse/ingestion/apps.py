"""Django app configuration for ingestion module."""

from django.apps import AppConfig


class IngestionConfig(AppConfig):
    """Configuration for the ingestion app (management commands only, no models)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "fanpulse.ingestion"
    label = "ingestion"
    verbose_name = "FanPulse Ingestion"
