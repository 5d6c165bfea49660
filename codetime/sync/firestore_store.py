"""Firestore store - day records as documents at users/{user_id}/days/{date}."""

import logging
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions

from ..auth.keychain import FirestoreCredentials
from .errors import PermanentStoreError, StoreAuthError, StoreNotConnectedError, TransientStoreError
from .models import DayRecord, DeltaRecord

__all__ = ["FirestoreStore", "translate_google_error"]

logger = logging.getLogger(__name__)

APP_NAME = "codetime-sync"
TOKEN_URI = "https://oauth2.googleapis.com/token"

_TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
    google_exceptions.TooManyRequests,
    google_exceptions.Aborted,
    google_exceptions.RetryError,
    auth_exceptions.TransportError,
)

_AUTH_ERRORS = (
    google_exceptions.Unauthenticated,
    google_exceptions.PermissionDenied,
    auth_exceptions.RefreshError,
)


def translate_google_error(error: Exception) -> Exception:
    """Map a Google client exception onto the store error hierarchy.

    Unknown exceptions are returned unchanged so the coordinator can fall
    back to classifying them by their text.
    """
    if isinstance(error, _TRANSIENT_ERRORS):
        return TransientStoreError(f"Firestore unavailable: {error}")
    if isinstance(error, _AUTH_ERRORS):
        return StoreAuthError(f"Firestore rejected credentials: {error}")
    if isinstance(error, google_exceptions.GoogleAPICallError):
        return PermanentStoreError(f"Firestore error: {error}")
    return error


class FirestoreStore:
    """Firebase Admin SDK backed store.

    Each day is one document holding ``date``, ``totalSeconds`` and a flat
    ``languages`` map. ``increment`` uses Firestore's server-side
    ``Increment`` transform, so concurrent writers cannot lose updates.
    """

    def __init__(
        self,
        creds: Optional[FirestoreCredentials] = None,
        client: Optional[Any] = None,
    ):
        """Initialize the store.

        Args:
            creds: Service account fields used to initialize the Admin SDK
            client: Ready Firestore client (skips SDK initialization; for tests)
        """
        self.creds = creds
        self._db = client
        self._app: Optional[firebase_admin.App] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        """Initialize the Admin SDK app from the stored service account."""
        if self._db is None:
            if self.creds is None:
                raise StoreAuthError("No Firestore credentials configured")

            # Replace an app left over from an earlier configuration
            try:
                firebase_admin.delete_app(firebase_admin.get_app(APP_NAME))
            except ValueError:
                pass

            try:
                certificate = credentials.Certificate(
                    {
                        "type": "service_account",
                        "project_id": self.creds.project_id,
                        "client_email": self.creds.client_email,
                        "private_key": self.creds.private_key.replace("\\n", "\n"),
                        "token_uri": TOKEN_URI,
                    }
                )
                self._app = firebase_admin.initialize_app(
                    certificate, name=APP_NAME
                )
                self._db = firestore.client(self._app)
            except ValueError as e:
                raise StoreAuthError(f"Invalid service account: {e}") from e

        self._connected = True
        logger.info("Firestore initialized")

    def _doc(self, user_id: str, date: str):
        return (
            self._db.collection("users")
            .document(user_id)
            .collection("days")
            .document(date)
        )

    def read(self, user_id: str, date: str) -> Optional[DayRecord]:
        self._check_connected()
        try:
            snapshot = self._doc(user_id, date).get()
        except Exception as e:
            raise translate_google_error(e) from e
        if not snapshot.exists:
            return None
        return DayRecord.from_dict(snapshot.to_dict(), user_id=user_id)

    def write(self, user_id: str, date: str, record: DayRecord) -> None:
        self._check_connected()
        document = {
            "date": record.date,
            "totalSeconds": record.total_seconds,
            "languages": dict(record.languages),
        }
        try:
            self._doc(user_id, date).set(document)
        except Exception as e:
            raise translate_google_error(e) from e

    def increment(self, user_id: str, delta: DeltaRecord) -> None:
        """Add a delta with server-side increments on every counter."""
        self._check_connected()
        document = {
            "date": delta.date,
            "totalSeconds": firestore.Increment(delta.total_seconds),
            "languages": {
                lang: firestore.Increment(seconds)
                for lang, seconds in delta.languages.items()
            },
        }
        try:
            self._doc(user_id, delta.date).set(document, merge=True)
        except Exception as e:
            raise translate_google_error(e) from e

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreNotConnectedError("Firestore store is not connected")

    def close(self) -> None:
        """Tear down the Admin SDK app."""
        self._connected = False
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
            self._db = None
            logger.info("Firestore app deleted")
