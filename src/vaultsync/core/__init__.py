"""Core sync logic package."""

from .notifications import Notice, NoticeLevel, Notifier
from .sync_engine import ReconciliationEngine, SyncResult, UploadResult
from .deletion import DeletionPropagator, DeletionResult
from .connector import VaultSyncConnector

__all__ = [
    "Notice",
    "NoticeLevel",
    "Notifier",
    "ReconciliationEngine",
    "SyncResult",
    "UploadResult",
    "DeletionPropagator",
    "DeletionResult",
    "VaultSyncConnector",
]
