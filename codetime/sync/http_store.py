"""HTTP API store - day records behind the tracking web API."""

import logging
from typing import Optional
from urllib.parse import quote

import requests

from .. import __version__
from ..auth.keychain import MIN_TOKEN_LENGTH
from ..config import DEFAULT_API_URL
from .errors import PermanentStoreError, StoreAuthError, StoreNotConnectedError, TransientStoreError
from .models import DayRecord, DeltaRecord
from .retry import RetryConfig, RetryExhausted, retry_with_backoff

__all__ = ["HttpStore"]

logger = logging.getLogger(__name__)


class _RetryableError(Exception):
    """Internal: marks a failure worth another attempt within one request."""

    pass


class HttpStore:
    """Client for the tracking API.

    Endpoints (relative to ``api_url``):
        GET  track/{user_id}/{date}    read a day record (404 = none yet)
        PUT  track/{user_id}/{date}    replace a day record
        POST track                     server-side additive merge

    Handles:
    - Bearer token authentication
    - Retry with exponential backoff for connection errors, timeouts and 5xx
    - Mapping HTTP failures onto transient / permanent store errors
    """

    DEFAULT_RETRY_CONFIG = RetryConfig(
        max_retries=3,
        base_delay=1.0,
        max_delay=30.0,
        exponential_base=2.0,
        jitter=True,
    )

    USER_AGENT = f"CodeTime-Sync/{__version__}"

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        token: Optional[str] = None,
        timeout: int = 30,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the HTTP store.

        Args:
            api_url: Tracking API base URL
            token: API token for authentication
            timeout: Request timeout in seconds
            retry_config: Configuration for retry with exponential backoff
            session: Optional requests session (for dependency injection/testing)
        """
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.retry_config = retry_config or self.DEFAULT_RETRY_CONFIG
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _get_headers(self) -> dict:
        """Get request headers with authentication."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[dict] = None,
        allow_missing: bool = False,
    ) -> Optional[dict]:
        """Make a request to the tracking API.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to api_url)
            data: JSON body
            allow_missing: Return None instead of failing on 404

        Returns:
            Response data as dict, or None for an allowed 404

        Raises:
            StoreAuthError: For 401/403 responses (not retried)
            TransientStoreError: Network trouble or 5xx after retries
            PermanentStoreError: Any other rejection
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        kwargs: dict = {"timeout": self.timeout, "headers": self._get_headers()}
        if data is not None:
            kwargs["json"] = data

        def do_request() -> Optional[dict]:
            try:
                response = self._session.request(method, url, **kwargs)
            except requests.exceptions.ConnectionError as e:
                raise _RetryableError(f"Cannot connect to tracking API: {e}") from e
            except requests.exceptions.Timeout as e:
                raise _RetryableError("Request timed out") from e

            if response.status_code == 401:
                raise StoreAuthError("Missing or invalid API token")
            if response.status_code == 403:
                raise StoreAuthError("Token not valid for this user")
            if response.status_code == 404 and allow_missing:
                return None
            if response.status_code == 429 or response.status_code >= 500:
                raise _RetryableError(f"Server error: {response.status_code}")

            try:
                response.raise_for_status()
            except requests.exceptions.HTTPError as e:
                raise PermanentStoreError(
                    f"API error ({response.status_code}): "
                    f"{self._error_detail(response) or e}"
                ) from e
            return response.json() if response.content else {}

        try:
            return retry_with_backoff(
                do_request,
                config=self.retry_config,
                retryable_exceptions=(_RetryableError,),
                label=f"{method} {endpoint}",
            )
        except RetryExhausted as e:
            raise TransientStoreError(str(e.last_error or e)) from e.last_error

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return ""
        if isinstance(body, dict):
            return str(body.get("error") or body.get("message") or "")
        return ""

    def set_token(self, token: str) -> None:
        """Set the API token."""
        self.token = token

    def connect(self) -> None:
        """Check the configured token.

        The API has no reachability endpoint, so network trouble surfaces on
        the first read, write or increment as a transient failure.
        """
        if not self.token or len(self.token) < MIN_TOKEN_LENGTH:
            raise StoreAuthError("No valid API token configured")
        self._connected = True
        logger.debug(f"Using tracking API at {self.api_url}")

    def read(self, user_id: str, date: str) -> Optional[DayRecord]:
        self._check_connected()
        data = self._request("GET", self._day_endpoint(user_id, date), allow_missing=True)
        if data is None:
            return None
        return DayRecord.from_dict(data, user_id=user_id)

    def write(self, user_id: str, date: str, record: DayRecord) -> None:
        self._check_connected()
        self._request("PUT", self._day_endpoint(user_id, date), data=record.to_dict())

    def increment(self, user_id: str, delta: DeltaRecord) -> Optional[DayRecord]:
        """Let the server add the delta to its stored record."""
        self._check_connected()
        payload = {"userId": user_id, **delta.to_dict()}
        data = self._request("POST", "track", data=payload)
        if data and "date" in data:
            return DayRecord.from_dict(data, user_id=user_id)
        return None

    @staticmethod
    def _day_endpoint(user_id: str, date: str) -> str:
        return f"track/{quote(user_id, safe='')}/{quote(date, safe='')}"

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreNotConnectedError("HTTP store is not connected")

    def close(self) -> None:
        """Close the session if we own it."""
        self._connected = False
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "HttpStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
