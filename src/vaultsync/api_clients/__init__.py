"""API clients package for remote storage services."""

from .base import BaseStorageClient, RemoteFileRecord
from .google_drive import GoogleDriveClient

__all__ = [
    # Base classes
    "BaseStorageClient",
    "RemoteFileRecord",

    # Client implementations
    "GoogleDriveClient",
]
