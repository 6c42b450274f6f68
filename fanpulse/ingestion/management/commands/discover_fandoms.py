"""
Management command to mine recent content for untracked fandoms.

Usage:
    python scripts/run_manage.py discover_fandoms
    python scripts/run_manage.py discover_fandoms --corroborate 5
    python scripts/run_manage.py discover_fandoms --clear
"""

from __future__ import annotations

from django.core.management.base import BaseCommand

from fanpulse.discovery.service import clear_discoveries, run_discovery
from fanpulse.integrations.google_trends import DelayPolicy, RegionalInterestClient


class Command(BaseCommand):
    help = "Discover untracked fandom candidates from recent content"

    def add_arguments(self, parser):
        parser.add_argument(
            "--corroborate",
            type=int,
            default=0,
            metavar="N",
            help="Check regional search interest for the top N candidates",
        )
        parser.add_argument(
            "--clear",
            action="store_true",
            help="Clear all open candidates instead of running discovery",
        )

    def handle(self, *args, **options):
        if options["clear"]:
            cleared = clear_discoveries()
            self.stdout.write(self.style.SUCCESS(f"Cleared {cleared} candidates"))
            return

        top_n = options["corroborate"]
        trends_client = None
        if top_n > 0:
            trends_client = RegionalInterestClient(delays=DelayPolicy.from_settings())

        candidates = run_discovery(trends_client=trends_client, corroborate_top=top_n)

        if not candidates:
            self.stdout.write(self.style.WARNING("No candidates found"))
            return

        for candidate in candidates:
            self.stdout.write(
                f"  {candidate.name}: score={candidate.overall_score} "
                f"confidence={candidate.confidence} tier={candidate.suggested_tier} "
                f"group={candidate.suggested_group}"
            )
        self.stdout.write(self.style.SUCCESS(f"Discovery complete! {len(candidates)} candidates"))
