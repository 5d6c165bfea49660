"""Tests for the tracking API store."""

import json

import pytest
import requests
import responses

from codetime.sync.coordinator import SyncCoordinator
from codetime.sync.errors import (
    PermanentStoreError,
    StoreAuthError,
    StoreNotConnectedError,
    TransientStoreError,
)
from codetime.sync.http_store import HttpStore
from codetime.sync.models import DayRecord, DeltaRecord, SyncOutcome
from codetime.sync.retry import RetryConfig

API_URL = "https://codetime.example/api"
TOKEN = "t" * 32


class TestHttpStore:
    """Tests for HttpStore."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = HttpStore(
            api_url=API_URL,
            token=TOKEN,
            retry_config=RetryConfig(max_retries=1, base_delay=0, jitter=False),
        )

    def teardown_method(self):
        """Clean up."""
        self.store.close()

    def _connect(self):
        self.store.connect()

    @responses.activate
    def test_connect_sends_no_request(self):
        """Connect only checks the token; the API has no reachability route."""
        self._connect()

        assert self.store.is_connected
        assert len(responses.calls) == 0

    @responses.activate
    def test_coordinator_against_track_route_only(self):
        """With only POST track available, deltas are delivered, not queued."""
        responses.add(
            responses.POST,
            f"{API_URL}/track",
            json={"date": "2024-01-01", "totalSeconds": 60, "languages": {"go": 60}},
        )
        coordinator = SyncCoordinator(store=self.store)

        assert coordinator.connect() is True
        outcome = coordinator.submit("user-1", DeltaRecord("2024-01-01", 60, {"go": 60}))

        assert outcome is SyncOutcome.SUCCESS
        assert coordinator.queue.is_empty()
        assert len(responses.calls) == 1
        assert responses.calls[0].request.headers["Authorization"] == f"Bearer {TOKEN}"

    @responses.activate
    def test_unreachable_api_queues_delta(self):
        responses.add(
            responses.POST,
            f"{API_URL}/track",
            body=requests.exceptions.ConnectionError("connection refused"),
        )
        coordinator = SyncCoordinator(store=self.store)
        coordinator.connect()

        outcome = coordinator.submit("user-1", DeltaRecord("2024-01-01", 60, {"go": 60}))

        assert outcome is SyncOutcome.QUEUED
        assert coordinator.queue.size() == 1

    def test_connect_requires_token(self):
        store = HttpStore(api_url=API_URL, token="short")

        with pytest.raises(StoreAuthError):
            store.connect()
        assert store.is_connected is False

    def test_read_requires_connect(self):
        with pytest.raises(StoreNotConnectedError):
            self.store.read("user-1", "2024-01-01")

    @responses.activate
    def test_read_missing_record(self):
        self._connect()
        responses.add(responses.GET, f"{API_URL}/track/user-1/2024-01-01", status=404)

        assert self.store.read("user-1", "2024-01-01") is None

    @responses.activate
    def test_read_record(self):
        self._connect()
        responses.add(
            responses.GET,
            f"{API_URL}/track/user-1/2024-01-01",
            json={"date": "2024-01-01", "totalSeconds": 90, "languages": {"go": 90}},
        )

        record = self.store.read("user-1", "2024-01-01")

        assert record == DayRecord("user-1", "2024-01-01", 90, {"go": 90})

    @responses.activate
    def test_user_id_is_escaped(self):
        self._connect()
        responses.add(responses.GET, f"{API_URL}/track/a%2Fb/2024-01-01", status=404)

        assert self.store.read("a/b", "2024-01-01") is None

    @responses.activate
    def test_write_puts_full_record(self):
        self._connect()
        responses.add(responses.PUT, f"{API_URL}/track/user-1/2024-01-01", json={})
        record = DayRecord("user-1", "2024-01-01", 90, {"go": 90})

        self.store.write("user-1", "2024-01-01", record)

        body = json.loads(responses.calls[-1].request.body)
        assert body == record.to_dict()

    @responses.activate
    def test_increment_posts_delta(self):
        """Increment sends the delta for a server-side merge."""
        self._connect()
        responses.add(
            responses.POST,
            f"{API_URL}/track",
            json={
                "userId": "user-1",
                "date": "2024-01-01",
                "totalSeconds": 150,
                "languages": {"go": 150},
            },
        )

        result = self.store.increment("user-1", DeltaRecord("2024-01-01", 60, {"go": 60}))

        body = json.loads(responses.calls[-1].request.body)
        assert body == {
            "userId": "user-1",
            "date": "2024-01-01",
            "totalSeconds": 60,
            "languages": {"go": 60},
        }
        assert result.total_seconds == 150

    @responses.activate
    def test_unauthorized(self):
        self._connect()
        responses.add(responses.POST, f"{API_URL}/track", status=401)

        with pytest.raises(StoreAuthError):
            self.store.increment("user-1", DeltaRecord("2024-01-01", 1, {"go": 1}))

    @responses.activate
    def test_bad_request_is_permanent(self):
        """Server rejections carry the server's error message."""
        self._connect()
        responses.add(
            responses.POST,
            f"{API_URL}/track",
            status=400,
            json={"error": "Invalid date format"},
        )

        with pytest.raises(PermanentStoreError, match="Invalid date format"):
            self.store.increment("user-1", DeltaRecord("2024-01-01", 1, {"go": 1}))

    @responses.activate
    def test_server_error_retried_then_transient(self):
        self._connect()
        responses.add(responses.POST, f"{API_URL}/track", status=503)

        with pytest.raises(TransientStoreError):
            self.store.increment("user-1", DeltaRecord("2024-01-01", 1, {"go": 1}))

        # initial attempt + one retry
        assert len(responses.calls) == 2

    @responses.activate
    def test_server_error_recovers_on_retry(self):
        self._connect()
        responses.add(responses.PUT, f"{API_URL}/track/user-1/2024-01-01", status=502)
        responses.add(responses.PUT, f"{API_URL}/track/user-1/2024-01-01", json={})

        self.store.write("user-1", "2024-01-01", DayRecord("user-1", "2024-01-01", 1, {}))

        assert len(responses.calls) == 2

    @responses.activate
    def test_connection_error_is_transient(self):
        self._connect()
        responses.add(
            responses.GET,
            f"{API_URL}/track/user-1/2024-01-01",
            body=requests.exceptions.ConnectionError("ECONNRESET"),
        )

        with pytest.raises(TransientStoreError):
            self.store.read("user-1", "2024-01-01")

    def test_close_disconnects(self):
        self.store._connected = True

        self.store.close()

        assert self.store.is_connected is False
