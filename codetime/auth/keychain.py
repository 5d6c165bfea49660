"""Secure credential storage using system keychain."""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

__all__ = [
    "KeychainManager",
    "FirestoreCredentials",
    "ApiCredentials",
    "CredentialsError",
]

logger = logging.getLogger(__name__)

SERVICE_NAME = "CodeTime Sync"
FIRESTORE_ACCOUNT = "firestore_service_account"
API_ACCOUNT = "api_credentials"

MIN_TOKEN_LENGTH = 16


class CredentialsError(ValueError):
    """Credentials are missing fields or malformed."""

    pass


@dataclass
class FirestoreCredentials:
    """The three service-account fields the Admin SDK needs."""

    project_id: str
    client_email: str
    private_key: str

    def to_json(self) -> str:
        return json.dumps(
            {
                "project_id": self.project_id,
                "client_email": self.client_email,
                "private_key": self.private_key,
            }
        )

    @classmethod
    def from_json(cls, data: str) -> "FirestoreCredentials":
        parsed = json.loads(data)
        return cls(
            project_id=parsed["project_id"],
            client_email=parsed["client_email"],
            private_key=parsed["private_key"],
        )

    @classmethod
    def from_service_account_json(cls, raw: str) -> "FirestoreCredentials":
        """Extract credentials from a downloaded service-account JSON file.

        Only project_id, client_email and private_key are kept; the rest of
        the file is discarded.

        Raises:
            CredentialsError: If the JSON is invalid or a field is missing
        """
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CredentialsError(
                "Invalid JSON. Provide the entire contents of the service account file."
            ) from e

        if not isinstance(parsed, dict):
            raise CredentialsError("Service account JSON must be an object")

        missing = [
            key
            for key in ("project_id", "private_key", "client_email")
            if not parsed.get(key)
        ]
        if missing:
            raise CredentialsError(
                "Service account JSON is missing required fields: " + ", ".join(missing)
            )

        return cls(
            project_id=parsed["project_id"],
            client_email=parsed["client_email"],
            private_key=parsed["private_key"],
        )


@dataclass
class ApiCredentials:
    """Bearer token for the tracking HTTP API."""

    api_token: str

    def __post_init__(self) -> None:
        if not self.api_token or len(self.api_token) < MIN_TOKEN_LENGTH:
            raise CredentialsError(
                f"API token must be at least {MIN_TOKEN_LENGTH} characters"
            )

    def to_json(self) -> str:
        return json.dumps({"api_token": self.api_token})

    @classmethod
    def from_json(cls, data: str) -> "ApiCredentials":
        return cls(api_token=json.loads(data)["api_token"])


Credentials = Union[FirestoreCredentials, ApiCredentials]


class KeychainManager:
    """Manages secure credential storage."""

    def __init__(self, service_name: str = SERVICE_NAME):
        """Initialize keychain manager.

        Args:
            service_name: Service name for keychain entries
        """
        self.service_name = service_name

    @staticmethod
    def _account_for(credentials: Credentials) -> str:
        if isinstance(credentials, FirestoreCredentials):
            return FIRESTORE_ACCOUNT
        return API_ACCOUNT

    def store(self, credentials: Credentials) -> bool:
        """Store credentials in keychain.

        Returns:
            True if stored successfully
        """
        try:
            keyring.set_password(
                self.service_name, self._account_for(credentials), credentials.to_json()
            )
            logger.info("Credentials stored in keychain")
            return True
        except KeyringError as e:
            logger.error(f"Failed to store credentials: {e}")
            return False

    def _load(self, account: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service_name, account)
        except KeyringError as e:
            logger.error(f"Failed to load credentials: {e}")
            return None

    def load_firestore(self) -> Optional[FirestoreCredentials]:
        """Load the Firestore service account, if one was configured."""
        data = self._load(FIRESTORE_ACCOUNT)
        if not data:
            return None
        try:
            return FirestoreCredentials.from_json(data)
        except (json.JSONDecodeError, KeyError) as e:
            logger.error(f"Invalid credential format: {e}")
            return None

    def load_api(self) -> Optional[ApiCredentials]:
        """Load the HTTP API token, if one was configured."""
        data = self._load(API_ACCOUNT)
        if not data:
            return None
        try:
            return ApiCredentials.from_json(data)
        except (json.JSONDecodeError, KeyError, CredentialsError) as e:
            logger.error(f"Invalid credential format: {e}")
            return None

    def delete(self) -> bool:
        """Delete all stored credentials.

        Returns:
            True if deleted (or didn't exist)
        """
        ok = True
        for account in (FIRESTORE_ACCOUNT, API_ACCOUNT):
            try:
                keyring.delete_password(self.service_name, account)
            except PasswordDeleteError:
                # Nothing stored under this account
                pass
            except KeyringError as e:
                logger.error(f"Failed to delete credentials: {e}")
                ok = False
        if ok:
            logger.info("Credentials deleted")
        return ok

    def has_credentials(self, backend: str) -> bool:
        """Check whether the given backend has credentials stored."""
        if backend == "firestore":
            return self.load_firestore() is not None
        if backend == "http":
            return self.load_api() is not None
        return True
