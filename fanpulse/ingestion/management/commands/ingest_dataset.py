"""
Management command to ingest one scraper dataset.

Usage:
    python scripts/run_manage.py ingest_dataset --dataset <id> --fandom <uuid> --platform tiktok
    python scripts/run_manage.py ingest_dataset --dataset <id> --source google_trends
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from pydantic import ValidationError

from fanpulse.core.dto import IngestRequest
from fanpulse.ingestion.service import ingest_dataset


class Command(BaseCommand):
    help = "Fetch a dataset from Apify and ingest it (normalize -> persist -> discover)"

    def add_arguments(self, parser):
        parser.add_argument("--dataset", required=True, help="Apify dataset ID")
        parser.add_argument("--fandom", help="Fandom UUID (content datasets)")
        parser.add_argument("--platform", help="Platform the dataset was scraped from")
        parser.add_argument(
            "--source",
            default="",
            help="Scrape job source (actor ID or registry key, e.g. google_trends)",
        )

    def handle(self, *args, **options):
        try:
            request = IngestRequest(
                dataset_handle=options["dataset"],
                fandom_id=options["fandom"],
                platform=options["platform"],
                source_job_id=options["source"],
            )
        except ValidationError as e:
            raise CommandError(f"Invalid ingest request: {e}") from e

        result = ingest_dataset(request)

        if not result.success:
            raise CommandError(f"Ingestion failed: {result.error}")

        self.stdout.write(
            f"  Items: {result.items_count} ({result.items_created} new), "
            f"influencers: {result.influencer_count}"
        )
        for candidate in result.discoveries:
            self.stdout.write(
                f"  Candidate: {candidate.name} "
                f"(occurrences={candidate.occurrences}, score={candidate.overall_score})"
            )
        self.stdout.write(self.style.SUCCESS("Ingestion complete!"))
