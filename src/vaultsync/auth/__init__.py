"""Authentication module for vaultsync."""

from .oauth_handler import GoogleOAuthHandler
from .credentials import AuthState, CredentialStore

__all__ = ["GoogleOAuthHandler", "AuthState", "CredentialStore"]
