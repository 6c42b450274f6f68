"""
Management command to start scrapers for tracked fandoms.

Usage:
    python scripts/run_manage.py scrape_fandoms
    python scripts/run_manage.py scrape_fandoms --platform tiktok
    python scripts/run_manage.py scrape_fandoms --fandom <uuid>

Each started run is recorded as a pending ScrapeRun keyed by its dataset
id; ingest_dataset picks the dataset up once the scraper finishes.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from fanpulse.core.errors import PersistenceError
from fanpulse.core.guardrails import ApifyDisabledError
from fanpulse.ingestion.service import scrape_fandoms
from fanpulse.integrations.apify import ApifyClient


class Command(BaseCommand):
    help = "Start the platform scraper for every tracked fandom platform"

    def add_arguments(self, parser):
        parser.add_argument("--platform", help="Only this platform")
        parser.add_argument("--fandom", help="Only this fandom (UUID)")

    def handle(self, *args, **options):
        try:
            client = ApifyClient.from_settings()
        except ValueError as e:
            raise CommandError(f"Apify not configured: {e}") from e

        try:
            result = scrape_fandoms(
                client,
                platform=options["platform"],
                fandom_id=options["fandom"],
            )
        except ApifyDisabledError as e:
            raise CommandError(str(e)) from e
        except PersistenceError as e:
            raise CommandError(f"Scrape sweep failed: {e}") from e

        for failure in result.failures:
            self.stdout.write(self.style.WARNING(
                f"  Failed: fandom={failure.fandom_id} platform={failure.platform} ({failure.error})"
            ))
        if result.skipped:
            self.stdout.write(f"  Skipped {result.skipped} platforms with no scraper")

        summary = f"Started {len(result.started)} scrapes, {len(result.failures)} failed"
        if result.failures:
            self.stdout.write(self.style.WARNING(summary))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
