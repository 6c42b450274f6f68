"""
Regional interest client for the Google Trends web endpoints.

Fetches 0-100 interest scores per administrative region for a keyword.
The endpoints are undocumented and guarded, so each keyword runs a
three-step protocol:

1. acquire_session(geo): GET the trends landing page and collect cookies.
   If no CONSENT cookie comes back a synthetic consent pair is appended,
   otherwise later calls are refused.
2. explore(session, ...): describe keyword/geo/time range, receive widget
   descriptors, pick the GEO_MAP widget (request payload + opaque token).
3. fetch_geo_widget(session, widget): fetch the compared-geo data for that
   widget and read the region list.

Session state is an explicit TrendsSession value passed between steps.
Politeness delays come from a DelayPolicy so tests can run with zero delay.

Failure contract: fetch_regional_interest never raises. Every failure is
reported through RegionalTrendResult.error with an empty region list.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol
from urllib.parse import quote

import requests
from django.conf import settings
from pydantic import BaseModel, Field, model_validator

from fanpulse.core.errors import MalformedInputError, TransientNetworkError
from fanpulse.integrations.google_trends.regions import region_name as lookup_region_name

logger = logging.getLogger(__name__)


TRENDS_BASE_URL = "https://trends.google.com"

DEFAULT_GEO = "PH"
DEFAULT_TIME_RANGE = "today 3-m"
DEFAULT_TIMEOUT_S = 15.0

# Consent pair the landing page would set after a click-through
SYNTHETIC_CONSENT = (
    "CONSENT=PENDING+999; "
    "SOCS=CAISNQgDEitib3FfaWRlbnRpdHlmcm9udGVuZHVpc2VydmVyXzIwMjMwODI5LjA3X3AxGgJlbiACGgYIgJnPpwY"
)

BASE_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": f"{TRENDS_BASE_URL}/trends/explore",
}

GEO_MAP_WIDGET_ID = "GEO_MAP"


# =============================================================================
# RESULT TYPES
# =============================================================================


class RegionalInterest(BaseModel):
    region_code: str
    region_name: str
    interest_value: int = Field(default=0, ge=0, le=100)


class RegionalTrendResult(BaseModel):
    """
    Outcome for one keyword.

    error and regions are never both populated.
    """
    keyword: str
    geo: str
    time_range: str
    regions: list[RegionalInterest] = Field(default_factory=list)
    error: str | None = None

    @model_validator(mode="after")
    def check_error_excludes_regions(self) -> "RegionalTrendResult":
        if self.error and self.regions:
            raise ValueError("a failed result cannot carry regions")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# TRANSPORT
# =============================================================================


@dataclass(frozen=True)
class TransportResponse:
    status: int
    text: str
    set_cookies: list[str] = field(default_factory=list)  # "name=value" pairs


class Transport(Protocol):
    def get(self, url: str, *, headers: dict[str, str], timeout: float) -> TransportResponse:
        ...


class RequestsTransport:
    """Default transport. Stateless: cookies travel in the Cookie header only."""

    def get(self, url: str, *, headers: dict[str, str], timeout: float) -> TransportResponse:
        try:
            response = requests.get(url, headers=headers, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise TransientNetworkError(f"Timed out after {timeout:g}s") from e
        except requests.RequestException as e:
            raise TransientNetworkError(f"Request failed: {e}") from e
        return TransportResponse(
            status=response.status_code,
            text=response.text,
            set_cookies=[f"{c.name}={c.value}" for c in response.cookies],
        )


# =============================================================================
# DELAYS
# =============================================================================


@dataclass(frozen=True)
class DelayPolicy:
    """Fixed politeness delays, in seconds, between protocol steps and keywords."""

    session_delay: float = 1.5
    explore_delay: float = 2.0
    batch_delay: float = 10.0
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def none(cls) -> "DelayPolicy":
        return cls(session_delay=0.0, explore_delay=0.0, batch_delay=0.0, sleep=lambda _s: None)

    @classmethod
    def from_settings(cls) -> "DelayPolicy":
        return cls(
            session_delay=getattr(settings, "TRENDS_SESSION_DELAY_S", 1.5),
            explore_delay=getattr(settings, "TRENDS_EXPLORE_DELAY_S", 2.0),
            batch_delay=getattr(settings, "TRENDS_BATCH_DELAY_S", 10.0),
        )

    def wait(self, seconds: float) -> None:
        if seconds > 0:
            self.sleep(seconds)


# =============================================================================
# PROTOCOL PARSING
# =============================================================================


def strip_json_prefix(text: str) -> str:
    """
    Drop the anti-JSON-hijacking preamble.

    Trends API bodies start with a junk line such as ")]}'," before the
    document. Everything before the first "{" is discarded.
    """
    start = text.find("{")
    if start == -1:
        raise MalformedInputError("Response body contains no JSON object")
    return text[start:]


def parse_protocol_json(text: str) -> dict[str, Any]:
    try:
        data = json.loads(strip_json_prefix(text))
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Unparseable response body: {e.msg}") from e
    if not isinstance(data, dict):
        raise MalformedInputError("Response body is not a JSON object")
    return data


def _coerce_interest(value: Any) -> int:
    """Region values arrive as a number or a single-element list."""
    if isinstance(value, list):
        value = value[0] if value else 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(0, min(100, int(value)))


@dataclass(frozen=True)
class TrendsSession:
    geo: str
    cookie_header: str


# =============================================================================
# CLIENT
# =============================================================================


class RegionalInterestClient:
    """
    Sequential, rate-limited regional interest client.

    Usage:
        client = RegionalInterestClient()
        result = client.fetch_regional_interest("SB19")
        if result.ok:
            top = result.regions[0]
    """

    def __init__(
        self,
        transport: Transport | None = None,
        delays: DelayPolicy | None = None,
        *,
        hl: str = "en-US",
        tz: int = -480,
        timeout: float | None = None,
    ):
        self.transport = transport or RequestsTransport()
        self.delays = delays or DelayPolicy.from_settings()
        self.hl = hl
        self.tz = tz
        self.timeout = (
            timeout if timeout is not None
            else getattr(settings, "TRENDS_TIMEOUT_S", DEFAULT_TIMEOUT_S)
        )

    def _get(self, url: str, *, step: str, keyword: str, cookie_header: str = "") -> TransportResponse:
        headers = dict(BASE_HEADERS)
        if cookie_header:
            headers["Cookie"] = cookie_header
        call_start_ms = time.monotonic() * 1000
        logger.debug("TRENDS_CALL_START keyword=%s step=%s", keyword, step)
        response = self.transport.get(url, headers=headers, timeout=self.timeout)
        logger.debug(
            "TRENDS_CALL_END keyword=%s step=%s http_status=%d duration_ms=%d",
            keyword,
            step,
            response.status,
            int(time.monotonic() * 1000 - call_start_ms),
        )
        return response

    def acquire_session(self, geo: str, *, keyword: str = "") -> TrendsSession:
        response = self._get(
            f"{TRENDS_BASE_URL}/trends/?geo={quote(geo)}",
            step="session",
            keyword=keyword,
        )
        cookies = [c for c in response.set_cookies if c]
        if not any(c.startswith("CONSENT=") for c in cookies):
            cookies.append(SYNTHETIC_CONSENT)
        return TrendsSession(geo=geo, cookie_header="; ".join(cookies))

    def explore(self, session: TrendsSession, keyword: str, time_range: str) -> dict[str, Any]:
        """Return the GEO_MAP widget descriptor for the keyword."""
        req = {
            "comparisonItem": [{"keyword": keyword, "geo": session.geo, "time": time_range}],
            "category": 0,
            "property": "",
        }
        url = (
            f"{TRENDS_BASE_URL}/trends/api/explore?hl={self.hl}&tz={self.tz}"
            f"&req={quote(json.dumps(req))}"
        )
        response = self._get(url, step="explore", keyword=keyword, cookie_header=session.cookie_header)
        if response.status != 200:
            raise TransientNetworkError(f"HTTP {response.status}", status_code=response.status)

        widgets = parse_protocol_json(response.text).get("widgets") or []
        for widget in widgets:
            if isinstance(widget, dict) and widget.get("id") == GEO_MAP_WIDGET_ID:
                return widget
        raise MalformedInputError("No regional data available")

    def fetch_geo_widget(
        self, session: TrendsSession, widget: dict[str, Any], *, keyword: str = ""
    ) -> list[RegionalInterest]:
        url = (
            f"{TRENDS_BASE_URL}/trends/api/widgetdata/comparedgeo?hl={self.hl}&tz={self.tz}"
            f"&req={quote(json.dumps(widget.get('request', {})))}"
            f"&token={quote(str(widget.get('token', '')))}"
        )
        response = self._get(url, step="widget", keyword=keyword, cookie_header=session.cookie_header)
        if response.status != 200:
            raise TransientNetworkError(
                f"HTTP {response.status} on widget", status_code=response.status
            )

        data = parse_protocol_json(response.text)
        geo_map = (data.get("default") or {}).get("geoMapData") or []
        if not geo_map:
            raise MalformedInputError("No regional data points")

        regions = []
        for item in geo_map:
            code = str(item.get("geoCode") or "")
            regions.append(RegionalInterest(
                region_code=code,
                region_name=item.get("geoName") or lookup_region_name(code),
                interest_value=_coerce_interest(item.get("value")),
            ))
        # sorted() is stable with reverse=True: tied values keep input order
        return sorted(regions, key=lambda r: r.interest_value, reverse=True)

    def fetch_regional_interest(
        self,
        keyword: str,
        geo: str = DEFAULT_GEO,
        time_range: str = DEFAULT_TIME_RANGE,
    ) -> RegionalTrendResult:
        """Run the full protocol for one keyword. Never raises."""
        try:
            session = self.acquire_session(geo, keyword=keyword)
            self.delays.wait(self.delays.session_delay)
            widget = self.explore(session, keyword, time_range)
            self.delays.wait(self.delays.explore_delay)
            regions = self.fetch_geo_widget(session, widget, keyword=keyword)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning(
                "Regional interest failed: keyword=%s geo=%s error=%s",
                keyword,
                geo,
                message,
            )
            return RegionalTrendResult(
                keyword=keyword, geo=geo, time_range=time_range, error=message
            )

        logger.info(
            "Regional interest fetched: keyword=%s geo=%s regions=%d",
            keyword,
            geo,
            len(regions),
        )
        return RegionalTrendResult(
            keyword=keyword, geo=geo, time_range=time_range, regions=regions
        )

    def fetch_regional_interest_batch(
        self,
        keywords: list[str],
        geo: str = DEFAULT_GEO,
        time_range: str = DEFAULT_TIME_RANGE,
    ) -> list[RegionalTrendResult]:
        """
        Fetch keywords strictly one after another.

        Waits batch_delay before every keyword after the first. One keyword's
        failure never stops the batch; results come back in input order.
        """
        results = []
        for index, keyword in enumerate(keywords):
            if index > 0:
                self.delays.wait(self.delays.batch_delay)
            results.append(self.fetch_regional_interest(keyword, geo, time_range))
        return results
