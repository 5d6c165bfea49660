"""Auth module - secure storage of backend credentials."""

from .keychain import ApiCredentials, CredentialsError, FirestoreCredentials, KeychainManager

__all__ = ["ApiCredentials", "CredentialsError", "FirestoreCredentials", "KeychainManager"]
