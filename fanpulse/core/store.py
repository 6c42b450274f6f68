"""
Store contract consumed by the pipeline.

The normalizer, miner and recommendation service never touch the ORM
directly; they go through a FandomStore. DjangoFandomStore is the
production implementation. Every django.db.DatabaseError is re-raised as
PersistenceError with the original chained.

Write rules:
- content items upsert by (platform, external_id); a missing published_at
  on the incoming record keeps the stored one
- snapshots replace on (fandom, platform, date)
- influencers upsert by (fandom, platform, username)
- discoveries upsert by normalized name; tracked/cleared rows are frozen,
  dismissed rows resurface only after enough new occurrences
- scrape run status only moves forward; terminal runs reject writes
"""

from __future__ import annotations

import abc
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterator

from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.text import slugify

from fanpulse.core.enums import (
    FROZEN_DISCOVERY_STATUSES,
    SCRAPE_STATUS_RANK,
    TERMINAL_SCRAPE_STATUSES,
    DiscoveryStatus,
    ScrapeStatus,
)
from fanpulse.core.errors import PersistenceError, ScrapeRunTransitionError
from fanpulse.core.models import (
    ContentItem,
    Fandom,
    FandomDiscovery,
    FandomPlatform,
    GoogleTrend,
    Influencer,
    MetricSnapshot,
    ScrapeRun,
)

logger = logging.getLogger(__name__)


# Outcomes of upsert_discovery
DISCOVERY_CREATED = "created"
DISCOVERY_UPDATED = "updated"
DISCOVERY_RESURFACED = "resurfaced"
DISCOVERY_SKIPPED = "skipped"


@dataclass
class DiscoveryUpsert:
    discovery: FandomDiscovery
    outcome: str

    @property
    def is_active(self) -> bool:
        """True when the row is (still or again) in the discovered state."""
        return self.outcome in (DISCOVERY_CREATED, DISCOVERY_UPDATED, DISCOVERY_RESURFACED)


class FandomStore(abc.ABC):
    """Operations the pipeline needs from persistence."""

    @abc.abstractmethod
    def atomic(self):
        """Context manager grouping writes into one unit of work."""

    # --- writes -------------------------------------------------------------

    @abc.abstractmethod
    def upsert_content_item(
        self, platform: str, external_id: str, fields: dict[str, Any]
    ) -> tuple[ContentItem, bool]:
        """Idempotent upsert. Returns (item, created)."""

    @abc.abstractmethod
    def append_or_replace_metric_snapshot(
        self, fandom_id, platform: str, snapshot_date: date, fields: dict[str, Any]
    ) -> MetricSnapshot:
        ...

    @abc.abstractmethod
    def upsert_influencer(
        self, fandom_id, platform: str, username: str, fields: dict[str, Any]
    ) -> Influencer:
        ...

    @abc.abstractmethod
    def upsert_discovery(
        self, normalized_name: str, fields: dict[str, Any], *, resurface_growth: int
    ) -> DiscoveryUpsert:
        ...

    @abc.abstractmethod
    def set_scrape_run_status(
        self,
        run_id,
        status: str,
        items_count: int | None = None,
        error_message: str = "",
    ) -> ScrapeRun:
        """Advance a run. Raises ScrapeRunTransitionError on regression or terminal writes."""

    @abc.abstractmethod
    def upsert_google_trend(
        self, fandom_id, keyword: str, trend_date: date, region: str, interest_value: int
    ) -> GoogleTrend:
        ...

    @abc.abstractmethod
    def update_platform_followers(self, fandom_id, platform: str, followers: int) -> None:
        ...

    @abc.abstractmethod
    def get_or_create_scrape_run(
        self, dataset_id: str, actor_id: str = "", fandom_id=None, platform: str = ""
    ) -> ScrapeRun:
        ...

    # --- reads --------------------------------------------------------------

    @abc.abstractmethod
    def get_snapshot(self, fandom_id, platform: str, snapshot_date: date) -> MetricSnapshot | None:
        ...

    @abc.abstractmethod
    def get_latest_snapshot(
        self, fandom_id, platform: str, *, before: date | None = None
    ) -> MetricSnapshot | None:
        ...

    @abc.abstractmethod
    def get_fandom(self, fandom_id) -> Fandom | None:
        ...

    @abc.abstractmethod
    def list_fandoms(self, include_retired: bool = False) -> list[Fandom]:
        ...

    @abc.abstractmethod
    def find_fandom_by_keyword(self, keyword: str) -> Fandom | None:
        ...

    @abc.abstractmethod
    def get_platform_followers(self, fandom_id, platform: str) -> int | None:
        ...

    @abc.abstractmethod
    def list_fandom_platforms(self, platform: str | None = None) -> list[FandomPlatform]:
        ...

    @abc.abstractmethod
    def list_recent_content(self, limit: int) -> list[ContentItem]:
        ...

    @abc.abstractmethod
    def list_latest_snapshots(self) -> dict[tuple[Any, str], MetricSnapshot]:
        """Latest snapshot per (fandom_id, platform)."""

    # --- discovery lifecycle ------------------------------------------------

    @abc.abstractmethod
    def get_discovery(self, discovery_id) -> FandomDiscovery | None:
        ...

    @abc.abstractmethod
    def set_discovery_status(
        self, discovery_id, status: str, tracked_fandom_id=None
    ) -> FandomDiscovery:
        ...

    @abc.abstractmethod
    def clear_discoveries(self) -> int:
        ...

    @abc.abstractmethod
    def get_or_create_fandom(self, slug: str, defaults: dict[str, Any]) -> tuple[Fandom, bool]:
        ...

    @abc.abstractmethod
    def upsert_fandom_platform(
        self, fandom_id, platform: str, handle: str, followers: int = 0
    ) -> FandomPlatform:
        ...


class DjangoFandomStore(FandomStore):
    """FandomStore backed by the Django ORM."""

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except DatabaseError as e:
            logger.error("Store operation failed: op=%s error=%s", operation, e)
            raise PersistenceError(f"{operation} failed: {e}") from e

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._guard("atomic"), transaction.atomic():
            yield

    def upsert_content_item(self, platform, external_id, fields):
        with self._guard("upsert_content_item"), transaction.atomic():
            existing = (
                ContentItem.objects.select_for_update()
                .filter(platform=platform, external_id=external_id)
                .first()
            )
            if existing is None:
                item = ContentItem.objects.create(
                    platform=platform, external_id=external_id, **fields
                )
                return item, True

            for key, value in fields.items():
                # Original owner and original publish time are kept
                if key in ("fandom", "fandom_id"):
                    continue
                if key == "published_at" and value is None:
                    continue
                setattr(existing, key, value)
            existing.save()
            return existing, False

    def append_or_replace_metric_snapshot(self, fandom_id, platform, snapshot_date, fields):
        with self._guard("append_or_replace_metric_snapshot"), transaction.atomic():
            snapshot, _ = MetricSnapshot.objects.update_or_create(
                fandom_id=fandom_id,
                platform=platform,
                date=snapshot_date,
                defaults=fields,
            )
            return snapshot

    def upsert_influencer(self, fandom_id, platform, username, fields):
        # Usernames match case-insensitively; the first stored casing is kept
        with self._guard("upsert_influencer"), transaction.atomic():
            influencer = (
                Influencer.objects.select_for_update()
                .filter(fandom_id=fandom_id, platform=platform, username__iexact=username)
                .first()
            )
            if influencer is None:
                return Influencer.objects.create(
                    fandom_id=fandom_id, platform=platform, username=username, **fields
                )
            for name, value in fields.items():
                setattr(influencer, name, value)
            influencer.save()
            return influencer

    def upsert_discovery(self, normalized_name, fields, *, resurface_growth):
        now = timezone.now()
        with self._guard("upsert_discovery"), transaction.atomic():
            existing = (
                FandomDiscovery.objects.select_for_update()
                .filter(normalized_name=normalized_name)
                .first()
            )
            if existing is None:
                discovery = FandomDiscovery.objects.create(
                    normalized_name=normalized_name,
                    first_detected_at=now,
                    last_detected_at=now,
                    **fields,
                )
                return DiscoveryUpsert(discovery, DISCOVERY_CREATED)

            if existing.status in FROZEN_DISCOVERY_STATUSES:
                return DiscoveryUpsert(existing, DISCOVERY_SKIPPED)

            outcome = DISCOVERY_UPDATED
            if existing.status == DiscoveryStatus.DISMISSED:
                growth = fields.get("occurrences", 0) - existing.occurrences
                if growth < resurface_growth:
                    return DiscoveryUpsert(existing, DISCOVERY_SKIPPED)
                existing.status = DiscoveryStatus.DISCOVERED
                existing.dismissed_at = None
                outcome = DISCOVERY_RESURFACED
                logger.info(
                    "Discovery resurfaced: name=%s growth=%d",
                    normalized_name,
                    growth,
                )

            for key, value in fields.items():
                setattr(existing, key, value)
            existing.last_detected_at = now
            existing.save()
            return DiscoveryUpsert(existing, outcome)

    def set_scrape_run_status(self, run_id, status, items_count=None, error_message=""):
        with self._guard("set_scrape_run_status"), transaction.atomic():
            run = ScrapeRun.objects.select_for_update().filter(pk=run_id).first()
            if run is None:
                raise PersistenceError(f"ScrapeRun {run_id} does not exist")

            current = run.status
            if current in TERMINAL_SCRAPE_STATUSES or (
                SCRAPE_STATUS_RANK[status] < SCRAPE_STATUS_RANK[current]
            ):
                raise ScrapeRunTransitionError(run_id, current, status)

            run.status = status
            if items_count is not None:
                run.items_count = items_count
            if error_message:
                run.error_message = error_message
            if status in TERMINAL_SCRAPE_STATUSES:
                run.finished_at = timezone.now()
            run.save()
            return run

    def upsert_google_trend(self, fandom_id, keyword, trend_date, region, interest_value):
        with self._guard("upsert_google_trend"), transaction.atomic():
            trend, _ = GoogleTrend.objects.update_or_create(
                fandom_id=fandom_id,
                keyword=keyword,
                date=trend_date,
                region=region,
                defaults={"interest_value": interest_value},
            )
            return trend

    def update_platform_followers(self, fandom_id, platform, followers):
        with self._guard("update_platform_followers"):
            FandomPlatform.objects.filter(fandom_id=fandom_id, platform=platform).update(
                followers=followers,
                last_scraped_at=timezone.now(),
            )

    def get_or_create_scrape_run(self, dataset_id, actor_id="", fandom_id=None, platform=""):
        with self._guard("get_or_create_scrape_run"), transaction.atomic():
            run = (
                ScrapeRun.objects.filter(dataset_id=dataset_id)
                .order_by("-started_at")
                .first()
            )
            if run is not None:
                return run
            return ScrapeRun.objects.create(
                dataset_id=dataset_id,
                actor_id=actor_id,
                fandom_id=fandom_id,
                platform=platform or "",
                status=ScrapeStatus.PENDING,
            )

    def get_snapshot(self, fandom_id, platform, snapshot_date):
        with self._guard("get_snapshot"):
            return MetricSnapshot.objects.filter(
                fandom_id=fandom_id, platform=platform, date=snapshot_date
            ).first()

    def get_latest_snapshot(self, fandom_id, platform, *, before=None):
        with self._guard("get_latest_snapshot"):
            qs = MetricSnapshot.objects.filter(fandom_id=fandom_id, platform=platform)
            if before is not None:
                qs = qs.filter(date__lt=before)
            return qs.order_by("-date").first()

    def get_fandom(self, fandom_id):
        with self._guard("get_fandom"):
            return Fandom.objects.filter(pk=fandom_id).first()

    def list_fandoms(self, include_retired=False):
        with self._guard("list_fandoms"):
            qs = Fandom.objects.all()
            if not include_retired:
                qs = qs.filter(is_retired=False)
            return list(qs.order_by("created_at", "id"))

    def find_fandom_by_keyword(self, keyword):
        term = (keyword or "").strip().lower()
        if not term:
            return None
        with self._guard("find_fandom_by_keyword"):
            fandoms = list(Fandom.objects.filter(is_retired=False).order_by("created_at", "id"))
        for fandom in fandoms:
            if fandom.name.lower() == term or fandom.slug == slugify(term):
                return fandom
        # Search terms are often "<fandom> philippines" or a shortened name
        bare = term.replace(" philippines", "").strip()
        for fandom in fandoms:
            name = fandom.name.lower()
            if name in term or (bare and bare in name):
                return fandom
        return None

    def get_platform_followers(self, fandom_id, platform):
        with self._guard("get_platform_followers"):
            fp = FandomPlatform.objects.filter(fandom_id=fandom_id, platform=platform).first()
            return fp.followers if fp else None

    def list_fandom_platforms(self, platform=None):
        with self._guard("list_fandom_platforms"):
            qs = FandomPlatform.objects.select_related("fandom").filter(
                fandom__is_retired=False
            )
            if platform:
                qs = qs.filter(platform=platform)
            return list(qs.order_by("fandom__created_at", "platform"))

    def list_recent_content(self, limit):
        with self._guard("list_recent_content"):
            return list(ContentItem.objects.order_by("-scraped_at")[:limit])

    def list_latest_snapshots(self):
        with self._guard("list_latest_snapshots"):
            latest: dict[tuple[Any, str], MetricSnapshot] = {}
            for snapshot in MetricSnapshot.objects.order_by("fandom_id", "platform", "-date"):
                latest.setdefault((snapshot.fandom_id, snapshot.platform), snapshot)
            return latest

    def get_discovery(self, discovery_id):
        with self._guard("get_discovery"):
            return FandomDiscovery.objects.filter(pk=discovery_id).first()

    def set_discovery_status(self, discovery_id, status, tracked_fandom_id=None):
        with self._guard("set_discovery_status"), transaction.atomic():
            discovery = FandomDiscovery.objects.select_for_update().get(pk=discovery_id)
            discovery.status = status
            if status == DiscoveryStatus.DISMISSED:
                discovery.dismissed_at = timezone.now()
            if tracked_fandom_id is not None:
                discovery.tracked_fandom_id = tracked_fandom_id
            discovery.save()
            return discovery

    def clear_discoveries(self):
        with self._guard("clear_discoveries"):
            return FandomDiscovery.objects.filter(status=DiscoveryStatus.DISCOVERED).update(
                status=DiscoveryStatus.CLEARED
            )

    def get_or_create_fandom(self, slug, defaults):
        with self._guard("get_or_create_fandom"), transaction.atomic():
            return Fandom.objects.get_or_create(slug=slug, defaults=defaults)

    def upsert_fandom_platform(self, fandom_id, platform, handle, followers=0):
        with self._guard("upsert_fandom_platform"), transaction.atomic():
            fp, created = FandomPlatform.objects.get_or_create(
                fandom_id=fandom_id,
                platform=platform,
                defaults={"handle": handle, "followers": followers},
            )
            if not created and fp.handle != handle:
                fp.handle = handle
                fp.save(update_fields=["handle"])
            return fp
