"""
Tests for the regional interest client.

The three-step protocol (session -> explore -> widget) runs against a
scripted fake transport and a zero-delay policy; no network, no sleeping.
"""

import json

import pytest

from fanpulse.core.errors import MalformedInputError, TransientNetworkError
from fanpulse.integrations.google_trends import (
    DelayPolicy,
    RegionalInterestClient,
    RegionalTrendResult,
    TransportResponse,
    parse_protocol_json,
    strip_json_prefix,
)
from fanpulse.integrations.google_trends.client import SYNTHETIC_CONSENT

PREFIX = ")]}',\n"


def explore_body(with_geo_map=True):
    widgets = [{"id": "TIMESERIES", "token": "ts", "request": {}}]
    if with_geo_map:
        widgets.append({"id": "GEO_MAP", "token": "tok123", "request": {"geo": {"country": "PH"}}})
    return PREFIX + json.dumps({"widgets": widgets})


def widget_body(values):
    geo_map = [
        {"geoCode": f"PH-{i:02d}", "geoName": f"Region {i}", "value": [value]}
        for i, value in enumerate(values)
    ]
    return ")]}'," + json.dumps({"default": {"geoMapData": geo_map}})


class FakeTransport:
    """Answers by URL step, per keyword. Records every call."""

    def __init__(self, routes=None, session_cookies=None):
        # routes: keyword -> {"explore": resp|exc, "widget": resp|exc}
        self.routes = routes or {}
        self.session_cookies = session_cookies if session_cookies is not None else ["NID=abc"]
        self.calls = []
        self._current_keyword = None

    def get(self, url, *, headers, timeout):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        if "/trends/?geo=" in url:
            return TransportResponse(status=200, text="<html>", set_cookies=list(self.session_cookies))
        step = "explore" if "/api/explore" in url else "widget"
        keyword = self._keyword_for(url)
        answer = self.routes[keyword][step]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def _keyword_for(self, url):
        for keyword in self.routes:
            if "/api/explore" in url and keyword in url:
                self._current_keyword = keyword
                return keyword
        return self._current_keyword


def ok_route(values):
    return {
        "explore": TransportResponse(status=200, text=explore_body()),
        "widget": TransportResponse(status=200, text=widget_body(values)),
    }


def make_client(transport):
    return RegionalInterestClient(transport=transport, delays=DelayPolicy.none(), timeout=15.0)


@pytest.mark.unit
class TestProtocolParsing:
    """The security preamble is stripped before JSON parsing."""

    def test_strip_prefix(self):
        """Everything before the first brace is dropped."""
        assert strip_json_prefix(")]}',\n{\"a\": 1}") == "{\"a\": 1}"

    def test_strip_prefix_without_object_raises(self):
        """A body with no JSON object is malformed."""
        with pytest.raises(MalformedInputError):
            strip_json_prefix(")]}',")

    def test_parse_protocol_json(self):
        """Prefixed body parses to a dict."""
        assert parse_protocol_json(")]}'\n{\"widgets\": []}") == {"widgets": []}

    def test_parse_garbage_raises(self):
        """Broken JSON after the prefix is malformed."""
        with pytest.raises(MalformedInputError):
            parse_protocol_json(")]}'{not json")


@pytest.mark.unit
class TestRegionalTrendResult:
    """error and regions are mutually exclusive."""

    def test_error_with_regions_rejected(self):
        """A result cannot carry both an error and regions."""
        with pytest.raises(ValueError):
            RegionalTrendResult(
                keyword="x",
                geo="PH",
                time_range="today 3-m",
                error="boom",
                regions=[{"region_code": "PH-00", "region_name": "NCR", "interest_value": 1}],
            )

    def test_ok_flag(self):
        """ok is true only without an error."""
        ok = RegionalTrendResult(keyword="x", geo="PH", time_range="today 3-m")
        failed = RegionalTrendResult(keyword="x", geo="PH", time_range="today 3-m", error="boom")
        assert ok.ok is True
        assert failed.ok is False
        assert failed.regions == []


@pytest.mark.unit
class TestFetchRegionalInterest:
    """Single keyword protocol."""

    def test_regions_sorted_descending_stable(self):
        """[40, 85, 85, 10] comes back 85, 85, 40, 10 with tied 85s in input order."""
        transport = FakeTransport({"SB19": ok_route([40, 85, 85, 10])})
        result = make_client(transport).fetch_regional_interest("SB19")

        assert result.ok
        assert [r.interest_value for r in result.regions] == [85, 85, 40, 10]
        assert [r.region_code for r in result.regions[:2]] == ["PH-01", "PH-02"]
        assert result.geo == "PH"
        assert result.time_range == "today 3-m"

    def test_synthetic_consent_added(self):
        """Without a CONSENT cookie from the session step one is synthesized."""
        transport = FakeTransport({"BINI": ok_route([10])}, session_cookies=["NID=abc"])
        make_client(transport).fetch_regional_interest("BINI")

        explore_call = transport.calls[1]
        assert explore_call["headers"]["Cookie"] == f"NID=abc; {SYNTHETIC_CONSENT}"

    def test_existing_consent_kept(self):
        """A CONSENT cookie from upstream is used as-is."""
        transport = FakeTransport(
            {"BINI": ok_route([10])}, session_cookies=["NID=abc", "CONSENT=YES+real"]
        )
        make_client(transport).fetch_regional_interest("BINI")

        cookie = transport.calls[1]["headers"]["Cookie"]
        assert cookie == "NID=abc; CONSENT=YES+real"

    def test_timeout_passed_to_transport(self):
        """Every step runs with the configured timeout."""
        transport = FakeTransport({"BINI": ok_route([10])})
        make_client(transport).fetch_regional_interest("BINI")
        assert [c["timeout"] for c in transport.calls] == [15.0, 15.0, 15.0]

    def test_missing_geo_map_widget(self):
        """No GEO_MAP widget yields an error result, not an exception."""
        transport = FakeTransport({
            "BINI": {
                "explore": TransportResponse(status=200, text=explore_body(with_geo_map=False)),
                "widget": TransportResponse(status=200, text=widget_body([1])),
            }
        })
        result = make_client(transport).fetch_regional_interest("BINI")

        assert result.error == "No regional data available"
        assert result.regions == []

    def test_explore_http_error(self):
        """A non-200 explore response is reported with its status."""
        transport = FakeTransport({
            "BINI": {
                "explore": TransportResponse(status=429, text="Too many requests"),
                "widget": TransportResponse(status=200, text=widget_body([1])),
            }
        })
        result = make_client(transport).fetch_regional_interest("BINI")
        assert result.error == "HTTP 429"

    def test_widget_http_error(self):
        """A non-200 widget response is reported as a widget error."""
        transport = FakeTransport({
            "BINI": {
                "explore": TransportResponse(status=200, text=explore_body()),
                "widget": TransportResponse(status=500, text=""),
            }
        })
        result = make_client(transport).fetch_regional_interest("BINI")
        assert result.error == "HTTP 500 on widget"

    def test_empty_geo_map(self):
        """A widget with no data points is an error result."""
        transport = FakeTransport({"BINI": ok_route([])})
        result = make_client(transport).fetch_regional_interest("BINI")
        assert result.error == "No regional data points"

    def test_transport_timeout_recorded(self):
        """A transport timeout fails the keyword with the timeout message."""
        transport = FakeTransport({
            "BINI": {
                "explore": TransientNetworkError("Timed out after 15s"),
                "widget": TransportResponse(status=200, text=widget_body([1])),
            }
        })
        result = make_client(transport).fetch_regional_interest("BINI")
        assert result.error == "Timed out after 15s"


@pytest.mark.unit
class TestFetchRegionalInterestBatch:
    """Sequential batch mode."""

    def test_failure_does_not_stop_batch(self):
        """If "a" errors, "b" is still attempted and sits at index 1."""
        transport = FakeTransport({
            "alpha": {
                "explore": TransportResponse(status=500, text=""),
                "widget": TransportResponse(status=200, text=widget_body([1])),
            },
            "bravo": ok_route([70, 30]),
        })
        results = make_client(transport).fetch_regional_interest_batch(["alpha", "bravo"])

        assert len(results) == 2
        assert results[0].keyword == "alpha"
        assert results[0].error == "HTTP 500"
        assert results[1].keyword == "bravo"
        assert results[1].ok
        assert [r.interest_value for r in results[1].regions] == [70, 30]

    def test_delays_between_steps_and_keywords(self):
        """Session, explore and batch delays are applied in order."""
        slept = []
        delays = DelayPolicy(session_delay=1.5, explore_delay=2.0, batch_delay=10.0, sleep=slept.append)
        transport = FakeTransport({"alpha": ok_route([5]), "bravo": ok_route([6])})
        client = RegionalInterestClient(transport=transport, delays=delays)

        client.fetch_regional_interest_batch(["alpha", "bravo"])

        assert slept == [1.5, 2.0, 10.0, 1.5, 2.0]
