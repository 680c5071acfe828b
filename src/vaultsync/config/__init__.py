"""Configuration package for vaultsync."""

from .settings import (
    GoogleSettings,
    SyncSettings,
    LoggingSettings,
    AppSettings,
    get_settings
)

from .schema import (
    DEFAULT_REDIRECT_URI,
    ROOT_FOLDER_ID,
    SyncTarget,
    VaultSyncConfig
)

from .store import ConfigStore

__all__ = [
    # Process settings
    "GoogleSettings",
    "SyncSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",

    # Persisted sync record
    "DEFAULT_REDIRECT_URI",
    "ROOT_FOLDER_ID",
    "SyncTarget",
    "VaultSyncConfig",
    "ConfigStore",
]
