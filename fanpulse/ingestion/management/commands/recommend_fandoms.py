"""
Management command to print campaign recommendations.

Usage:
    python scripts/run_manage.py recommend_fandoms
    python scripts/run_manage.py recommend_fandoms --segment postpaid
"""

from __future__ import annotations

from django.core.management.base import BaseCommand

from fanpulse.core.enums import MarketSegment
from fanpulse.recommendations.service import get_recommendations


class Command(BaseCommand):
    help = "Rank tracked fandoms for campaign targeting"

    def add_arguments(self, parser):
        parser.add_argument(
            "--segment",
            choices=MarketSegment.values,
            default=MarketSegment.ALL,
            help="Market segment (default: all)",
        )

    def handle(self, *args, **options):
        recommendations = get_recommendations(options["segment"])

        if not recommendations:
            self.stdout.write(self.style.WARNING("No fandoms with metrics to recommend"))
            return

        for rec in recommendations:
            self.stdout.write(
                f"{rec.score:6.2f}  {rec.fandom_name} [{rec.segment}] "
                f"via {rec.suggested_platform} ({rec.dominant_driver}-led, "
                f"reach {rec.estimated_reach:,})"
            )
            self.stdout.write(f"        {rec.suggested_action}")
        self.stdout.write(self.style.SUCCESS(f"{len(recommendations)} recommendations"))
