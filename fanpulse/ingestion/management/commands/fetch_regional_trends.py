"""
Management command to collect regional search interest for tracked fandoms.

Usage:
    python scripts/run_manage.py fetch_regional_trends
    python scripts/run_manage.py fetch_regional_trends --fandom <uuid>
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from fanpulse.core.store import DjangoFandomStore
from fanpulse.ingestion.trends import collect_regional_trends
from fanpulse.integrations.google_trends import DelayPolicy, RegionalInterestClient


class Command(BaseCommand):
    help = "Fetch Google Trends regional interest for each fandom and its artist"

    def add_arguments(self, parser):
        parser.add_argument("--fandom", help="Only this fandom (UUID)")

    def handle(self, *args, **options):
        store = DjangoFandomStore()

        if options["fandom"]:
            fandom = store.get_fandom(options["fandom"])
            if fandom is None:
                raise CommandError(f"Fandom not found: {options['fandom']}")
            fandoms = [fandom]
        else:
            fandoms = store.list_fandoms()

        if not fandoms:
            self.stdout.write(self.style.WARNING("No fandoms to process"))
            return

        self.stdout.write(f"Collecting regional interest for {len(fandoms)} fandoms...")
        client = RegionalInterestClient(delays=DelayPolicy.from_settings())
        rows = collect_regional_trends(fandoms, client, store)

        self.stdout.write(self.style.SUCCESS(f"Stored {rows} regional data points"))
