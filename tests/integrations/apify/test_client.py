"""
Unit tests for Apify client.

Tests URL building, error handling, and response parsing.
Uses mocked HTTP (no network calls).

Tests that call client methods need APIFY_ENABLED=true; the enable_apify
fixture overrides the setting for them.
"""

import itertools
from unittest.mock import MagicMock, patch

import pytest
import requests

from fanpulse.core.errors import TransientNetworkError
from fanpulse.core.guardrails import ApifyDisabledError
from fanpulse.integrations.apify.client import (
    ApifyClient,
    ApifyError,
    ApifyTimeoutError,
    RunInfo,
)


def _ok_response(payload):
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = payload
    return response


class TestApifyClientInit:
    """Tests for ApifyClient initialization."""

    def test_init_with_token(self):
        """Client initializes with token."""
        client = ApifyClient(token="test-token")
        assert client.token == "test-token"
        assert client.base_url == "https://api.apify.com"

    def test_init_with_custom_base_url(self):
        """Client accepts custom base URL."""
        client = ApifyClient(token="test-token", base_url="https://custom.apify.com/")
        assert client.base_url == "https://custom.apify.com"  # Trailing slash stripped

    def test_init_without_token_raises(self):
        """Client raises ValueError without token."""
        with pytest.raises(ValueError, match="token is required"):
            ApifyClient(token="")

    def test_from_settings(self, settings):
        """from_settings reads APIFY_TOKEN and APIFY_BASE_URL."""
        settings.APIFY_TOKEN = "settings-token"
        settings.APIFY_BASE_URL = "https://proxy.example.com"
        client = ApifyClient.from_settings()
        assert client.token == "settings-token"
        assert client.base_url == "https://proxy.example.com"


class TestApifyGuardrail:
    """Calls are blocked while APIFY_ENABLED is false."""

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_disabled_blocks_before_network(self, mock_session_class):
        """No request is issued when Apify is disabled."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyDisabledError):
            client.fetch_dataset_items("dataset456")

        mock_session.request.assert_not_called()


@pytest.mark.usefixtures("enable_apify")
class TestApifyClientStartActorRun:
    """Tests for start_actor_run method."""

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_start_actor_run_success(self, mock_session_class):
        """start_actor_run returns RunInfo on success."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = _ok_response({
            "data": {
                "id": "run123",
                "status": "RUNNING",
                "defaultDatasetId": "dataset456",
                "startedAt": "2025-01-15T10:00:00.000Z",
            }
        })

        client = ApifyClient(token="test-token")
        run_info = client.start_actor_run(
            actor_id="menoob/pldt-tiktok-scraper",
            input_json={"profiles": ["bini_ph"]},
        )

        # Actor id slash is encoded so it stays one path segment
        mock_session.request.assert_called_once()
        call_args = mock_session.request.call_args
        assert call_args[0][0] == "POST"
        assert call_args[0][1] == "https://api.apify.com/v2/acts/menoob%2Fpldt-tiktok-scraper/runs"
        assert call_args[1]["json"] == {"profiles": ["bini_ph"]}

        assert run_info.run_id == "run123"
        assert run_info.status == "RUNNING"
        assert run_info.dataset_id == "dataset456"
        assert run_info.actor_id == "menoob/pldt-tiktok-scraper"
        assert run_info.started_at is not None

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_start_actor_run_error_response(self, mock_session_class):
        """start_actor_run raises ApifyError on error response."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_response = MagicMock()
        mock_response.ok = False
        mock_response.status_code = 401
        mock_response.text = "Unauthorized"
        mock_session.request.return_value = mock_response

        client = ApifyClient(token="bad-token")
        with pytest.raises(ApifyError) as exc_info:
            client.start_actor_run("actor/test", {})

        assert exc_info.value.status_code == 401
        assert "authentication failed" in str(exc_info.value)

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_start_actor_run_request_exception(self, mock_session_class):
        """start_actor_run raises ApifyError on network error."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = requests.RequestException("Network error")

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyError, match="Request failed"):
            client.start_actor_run("actor/test", {})

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_timeout_is_transient(self, mock_session_class):
        """Timeouts surface as ApifyError, which is a TransientNetworkError."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = requests.exceptions.Timeout("slow")

        client = ApifyClient(token="test-token")
        with pytest.raises(TransientNetworkError, match="timed out"):
            client.start_actor_run("actor/test", {})


@pytest.mark.usefixtures("enable_apify")
class TestApifyClientPollRun:
    """Tests for poll_run method."""

    @patch("fanpulse.integrations.apify.client.time.sleep")
    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_poll_run_success(self, mock_session_class, mock_sleep):
        """poll_run returns RunInfo when run succeeds."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        # First call: RUNNING, second call: SUCCEEDED
        responses = [
            {"data": {"id": "run123", "status": "RUNNING", "actId": "actor/test"}},
            {
                "data": {
                    "id": "run123",
                    "status": "SUCCEEDED",
                    "actId": "actor/test",
                    "defaultDatasetId": "dataset456",
                    "finishedAt": "2025-01-15T10:05:00.000Z",
                }
            },
        ]
        mock_response = MagicMock()
        mock_response.ok = True
        mock_response.status_code = 200
        mock_response.json.side_effect = responses
        mock_session.request.return_value = mock_response

        client = ApifyClient(token="test-token")
        run_info = client.poll_run("run123", timeout_s=60, interval_s=1)

        assert run_info.status == "SUCCEEDED"
        assert run_info.dataset_id == "dataset456"
        assert mock_sleep.call_count == 1

    @patch("fanpulse.integrations.apify.client.time.sleep")
    @patch("fanpulse.integrations.apify.client.time.monotonic")
    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_poll_run_timeout(self, mock_session_class, mock_monotonic, mock_sleep):
        """poll_run raises ApifyTimeoutError when timeout exceeded."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = _ok_response(
            {"data": {"id": "run123", "status": "RUNNING"}}
        )

        # Every clock read advances 20s
        mock_monotonic.side_effect = itertools.count(0, 20)

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyTimeoutError, match="timed out"):
            client.poll_run("run123", timeout_s=30, interval_s=1)


@pytest.mark.usefixtures("enable_apify")
class TestApifyClientFetchDatasetItems:
    """Tests for fetch_dataset_items method."""

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_fetch_dataset_items_array_response(self, mock_session_class):
        """fetch_dataset_items handles array response."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        items = [{"id": "item1"}, {"id": "item2"}]
        mock_session.request.return_value = _ok_response(items)

        client = ApifyClient(token="test-token")
        result = client.fetch_dataset_items("dataset456", limit=20, offset=0)

        assert result == items
        call_args = mock_session.request.call_args
        assert call_args[0][0] == "GET"
        assert "datasets/dataset456/items" in call_args[0][1]
        assert call_args[1]["params"] == {"limit": 20, "offset": 0, "clean": "true"}

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_fetch_dataset_items_wrapped_response(self, mock_session_class):
        """fetch_dataset_items handles wrapped response format."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        items = [{"id": "item1"}]
        mock_session.request.return_value = _ok_response({"items": items, "total": 1})

        client = ApifyClient(token="test-token")
        result = client.fetch_dataset_items("dataset456")

        assert result == items

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_fetch_all_pages_until_short_page(self, mock_session_class):
        """fetch_all_dataset_items pages until a page comes back short."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = [
            _ok_response([{"id": "1"}, {"id": "2"}]),
            _ok_response([{"id": "3"}]),
        ]

        client = ApifyClient(token="test-token")
        result = client.fetch_all_dataset_items("dataset456", page_size=2)

        assert [item["id"] for item in result] == ["1", "2", "3"]
        offsets = [c[1]["params"]["offset"] for c in mock_session.request.call_args_list]
        assert offsets == [0, 2]

    @patch("fanpulse.integrations.apify.client.requests.Session")
    def test_fetch_all_respects_max_items(self, mock_session_class):
        """fetch_all_dataset_items never asks for more than max_items."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = [
            _ok_response([{"id": "1"}, {"id": "2"}]),
            _ok_response([{"id": "3"}]),
        ]

        client = ApifyClient(token="test-token")
        result = client.fetch_all_dataset_items("dataset456", page_size=2, max_items=3)

        assert len(result) == 3
        limits = [c[1]["params"]["limit"] for c in mock_session.request.call_args_list]
        assert limits == [2, 1]


class TestRunInfo:
    """Tests for RunInfo dataclass."""

    def test_is_terminal_succeeded(self):
        """SUCCEEDED is a terminal state."""
        run_info = RunInfo(
            run_id="123",
            actor_id="test",
            status="SUCCEEDED",
            dataset_id="ds",
            started_at=None,
            finished_at=None,
        )
        assert run_info.is_terminal() is True
        assert run_info.is_success() is True

    def test_is_terminal_failed(self):
        """FAILED is a terminal state."""
        run_info = RunInfo(
            run_id="123",
            actor_id="test",
            status="FAILED",
            dataset_id=None,
            started_at=None,
            finished_at=None,
        )
        assert run_info.is_terminal() is True
        assert run_info.is_success() is False

    def test_is_terminal_running(self):
        """RUNNING is not a terminal state."""
        run_info = RunInfo(
            run_id="123",
            actor_id="test",
            status="RUNNING",
            dataset_id=None,
            started_at=None,
            finished_at=None,
        )
        assert run_info.is_terminal() is False
        assert run_info.is_success() is False
