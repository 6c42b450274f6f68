"""
Apify API v2 client.

Primitives used by ingestion:
1. start_actor_run(actor_id, input_json) -> RunInfo
2. poll_run(run_id, timeout_s, interval_s) -> RunInfo
3. fetch_dataset_items(dataset_id, limit, offset) -> list[dict]
4. fetch_all_dataset_items(dataset_id, page_size, max_items) -> list[dict]

Endpoints per Apify API v2 docs (https://docs.apify.com/api/v2):
- POST /v2/acts/{actorId}/runs - start actor run
- GET /v2/actor-runs/{runId} - get run status
- GET /v2/datasets/{datasetId}/items - fetch dataset items

All API calls are guarded by require_apify_enabled(). With APIFY_ENABLED=false
(default) any call raises ApifyDisabledError before touching the network.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import quote

import requests
from django.conf import settings

from fanpulse.core.errors import TransientNetworkError
from fanpulse.core.guardrails import require_apify_enabled

logger = logging.getLogger(__name__)


class ApifyError(TransientNetworkError):
    """Raised when the Apify API fails or returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.body = body[:500] if body else None  # Trim body for logging
        super().__init__(message, status_code=status_code)


class ApifyTimeoutError(ApifyError):
    """Raised when polling for run completion times out."""


_HTTP_ERROR_MESSAGES = {
    401: "Apify authentication failed (401). Check APIFY_TOKEN and account credits.",
    402: "Apify payment required (402). Credits are exhausted.",
    403: "Apify access denied (403). The account cannot run this actor.",
}


@dataclass
class RunInfo:
    """
    Information about an Apify actor run.

    Apify status values: READY, RUNNING, SUCCEEDED, FAILED, TIMED-OUT, ABORTED.
    """

    run_id: str
    actor_id: str
    status: str
    dataset_id: str | None
    started_at: datetime | None
    finished_at: datetime | None
    error_message: str | None = None

    def is_terminal(self) -> bool:
        return self.status in ("SUCCEEDED", "FAILED", "TIMED-OUT", "ABORTED")

    def is_success(self) -> bool:
        return self.status == "SUCCEEDED"


def _parse_apify_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


class ApifyClient:
    """
    HTTP client for Apify API v2.

    Authentication via Bearer token.
    """

    def __init__(self, token: str, base_url: str = "https://api.apify.com"):
        if not token:
            raise ValueError("Apify token is required")
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_settings(cls) -> "ApifyClient":
        """Build a client from APIFY_TOKEN / APIFY_BASE_URL settings."""
        return cls(
            token=getattr(settings, "APIFY_TOKEN", ""),
            base_url=getattr(settings, "APIFY_BASE_URL", "https://api.apify.com"),
        )

    def _request(
        self,
        method: str,
        url: str,
        *,
        op: str,
        timeout: int,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Issue one request with APIFY_CALL_START/END logging.

        Network failures and non-2xx responses become ApifyError.
        """
        call_start_ms = time.monotonic() * 1000
        logger.info("APIFY_CALL_START op=%s url=%s", op, url)

        try:
            response = self._session.request(method, url, timeout=timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            duration_ms = int(time.monotonic() * 1000 - call_start_ms)
            logger.error(
                "APIFY_CALL_END op=%s status=TIMEOUT duration_ms=%d error=%s",
                op,
                duration_ms,
                str(e),
            )
            raise ApifyError(f"Apify {op} timed out after {timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            duration_ms = int(time.monotonic() * 1000 - call_start_ms)
            logger.error(
                "APIFY_CALL_END op=%s status=CONNECTION_ERROR duration_ms=%d error=%s",
                op,
                duration_ms,
                str(e),
            )
            raise ApifyError("Could not connect to Apify API.") from e
        except requests.RequestException as e:
            duration_ms = int(time.monotonic() * 1000 - call_start_ms)
            logger.error(
                "APIFY_CALL_END op=%s status=ERROR duration_ms=%d error=%s",
                op,
                duration_ms,
                str(e),
            )
            raise ApifyError(f"Request failed: {e}") from e

        duration_ms = int(time.monotonic() * 1000 - call_start_ms)
        if not response.ok:
            logger.error(
                "APIFY_CALL_END op=%s status=HTTP_ERROR duration_ms=%d http_status=%d error=%s",
                op,
                duration_ms,
                response.status_code,
                response.text[:200],
            )
            message = _HTTP_ERROR_MESSAGES.get(
                response.status_code,
                f"Apify {op} failed: HTTP {response.status_code}",
            )
            raise ApifyError(message, status_code=response.status_code, body=response.text)

        logger.info(
            "APIFY_CALL_END op=%s status=OK duration_ms=%d http_status=%d",
            op,
            duration_ms,
            response.status_code,
        )
        return response

    def start_actor_run(self, actor_id: str, input_json: dict[str, Any]) -> RunInfo:
        """
        Start an actor run.

        Raises:
            ApifyDisabledError: If APIFY_ENABLED=false
            ApifyError: If API returns an error
        """
        require_apify_enabled()

        # Actor ids contain a slash ("owner/name"); encode so it stays one path segment
        encoded_actor_id = quote(actor_id, safe="")
        url = f"{self.base_url}/v2/acts/{encoded_actor_id}/runs"
        response = self._request("POST", url, op="start_actor_run", timeout=30, json=input_json)

        data = response.json().get("data", {})
        run_info = self._parse_run_info(data, actor_id)
        logger.info(
            "Actor run started: actor_id=%s run_id=%s dataset_id=%s",
            actor_id,
            run_info.run_id,
            run_info.dataset_id,
        )
        return run_info

    def poll_run(
        self,
        run_id: str,
        timeout_s: int = 180,
        interval_s: int = 3,
    ) -> RunInfo:
        """
        Poll run status until terminal state or timeout.

        Raises:
            ApifyDisabledError: If APIFY_ENABLED=false
            ApifyTimeoutError: If polling times out
            ApifyError: If API returns an error
        """
        require_apify_enabled()

        url = f"{self.base_url}/v2/actor-runs/{run_id}"
        start_time = time.monotonic()

        while True:
            elapsed = time.monotonic() - start_time
            if elapsed > timeout_s:
                raise ApifyTimeoutError(
                    f"Polling timed out after {timeout_s}s for run_id={run_id}"
                )

            response = self._request("GET", url, op="poll_run", timeout=30)
            data = response.json().get("data", {})
            run_info = self._parse_run_info(data, data.get("actId", ""))
            if run_info.is_terminal():
                logger.info("Run completed: run_id=%s, status=%s", run_id, run_info.status)
                return run_info

            logger.debug(
                "Run still in progress: run_id=%s, status=%s, elapsed=%.1fs",
                run_id,
                run_info.status,
                elapsed,
            )
            time.sleep(interval_s)

    def fetch_dataset_items(
        self,
        dataset_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Fetch one page of items from a dataset.

        Raises:
            ApifyDisabledError: If APIFY_ENABLED=false
            ApifyError: If API returns an error
        """
        require_apify_enabled()

        url = f"{self.base_url}/v2/datasets/{dataset_id}/items"
        response = self._request(
            "GET",
            url,
            op="fetch_dataset_items",
            timeout=60,
            params={"limit": limit, "offset": offset, "clean": "true"},
        )

        # Endpoint returns a bare array; some proxies wrap it
        items = response.json()
        if isinstance(items, dict):
            items = items.get("items", [])
        logger.info(
            "Fetched dataset items: dataset_id=%s offset=%d count=%d",
            dataset_id,
            offset,
            len(items),
        )
        return items

    def fetch_all_dataset_items(
        self,
        dataset_id: str,
        page_size: int = 100,
        max_items: int | None = None,
    ) -> list[dict[str, Any]]:
        """Page through a dataset until exhausted or max_items is reached."""
        items: list[dict[str, Any]] = []
        offset = 0
        while max_items is None or len(items) < max_items:
            limit = page_size if max_items is None else min(page_size, max_items - len(items))
            page = self.fetch_dataset_items(dataset_id, limit=limit, offset=offset)
            items.extend(page)
            if len(page) < limit:
                break
            offset += len(page)
        return items

    def _parse_run_info(self, data: dict[str, Any], actor_id: str) -> RunInfo:
        status = data.get("status", "UNKNOWN")
        return RunInfo(
            run_id=data.get("id", ""),
            actor_id=actor_id or data.get("actId", ""),
            status=status,
            dataset_id=data.get("defaultDatasetId"),
            started_at=_parse_apify_datetime(data.get("startedAt")),
            finished_at=_parse_apify_datetime(data.get("finishedAt")),
            error_message=data.get("statusMessage") if status == "FAILED" else None,
        )
