"""Exception hierarchy shared by all vaultsync components."""

from typing import Optional


class VaultSyncError(Exception):
    """Base exception for vaultsync errors."""
    pass


class ConfigError(VaultSyncError):
    """Raised when required configuration is missing or unreadable."""
    pass


class AuthError(VaultSyncError):
    """Raised when token exchange or refresh fails."""
    pass


class RemoteApiError(VaultSyncError):
    """Raised when the remote storage API rejects a call."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NetworkError(RemoteApiError):
    """Raised on transport failures (connection errors, timeouts)."""
    pass


class RateLimitError(RemoteApiError):
    """Raised when the remote API rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message, status=429)
        self.retry_after = retry_after


class NotFoundError(RemoteApiError):
    """Raised when a remote object does not exist."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class LocalIOError(VaultSyncError):
    """Raised when a local vault read, listing or move fails."""
    pass
