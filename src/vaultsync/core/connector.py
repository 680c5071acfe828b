"""Main connector wiring credentials, storage client, vault and event handlers."""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .deletion import DeletionPropagator, DeletionResult
from .notifications import Notice, Notifier
from .sync_engine import ReconciliationEngine, SyncResult, UploadResult
from ..api_clients.base import BaseStorageClient
from ..api_clients.google_drive import GoogleDriveClient
from ..auth.credentials import CredentialStore
from ..config.settings import AppSettings, get_settings
from ..config.store import ConfigStore
from ..events.bus import DroppedFile, EventBus, EventKind, FileDeletedEvent, FilesDroppedEvent
from ..exceptions import LocalIOError
from ..utils.logging import get_logger, log_async_execution_time
from ..vault.base import BaseVault


class VaultSyncConnector:
    """Entry point for hosts: owns the components and subscribes them to the bus."""

    def __init__(
        self,
        config_store: ConfigStore,
        vault: BaseVault,
        client: Optional[BaseStorageClient] = None,
        credential_store: Optional[CredentialStore] = None,
        bus: Optional[EventBus] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[AppSettings] = None,
        notice_callback: Optional[Callable[[Notice], None]] = None
    ):
        """Initialize the connector.

        Args:
            config_store: Persisted sync configuration
            vault: Local vault abstraction
            client: Remote storage client, Google Drive by default
            credential_store: OAuth credential store, built from settings by default
            bus: Event bus to subscribe to, a new one by default
            notifier: Notice sink, built around ``notice_callback`` by default
            settings: Application settings, the global ones by default
            notice_callback: Host callback for user-facing notices
        """
        self.settings = settings or get_settings()
        self.config_store = config_store
        self.vault = vault
        self.bus = bus or EventBus()
        self.notifier = notifier or Notifier(callback=notice_callback)
        self.logger = get_logger(self.__class__.__name__)

        self.credential_store = credential_store or CredentialStore(
            config_store,
            scopes=self.settings.google.scopes,
            auth_url=self.settings.google.auth_uri,
            token_url=self.settings.google.token_uri,
        )
        self.client = client or GoogleDriveClient(
            self.credential_store,
            api_version=self.settings.google.api_version,
            timeout_seconds=self.settings.sync.request_timeout_seconds,
        )

        self.engine = ReconciliationEngine(
            client=self.client,
            vault=vault,
            config_store=config_store,
            notifier=self.notifier,
            max_concurrent_uploads=self.settings.sync.max_concurrent_uploads,
        )
        self.propagator = DeletionPropagator(
            client=self.client,
            config_store=config_store,
            notifier=self.notifier,
        )

        self._unsubscribers: List[Callable[[], None]] = []

    def register_handlers(self) -> None:
        """Subscribe the sync handlers to delete, drop and paste events."""
        if self._unsubscribers:
            return

        self._unsubscribers = [
            self.bus.subscribe(EventKind.DELETE, self._on_delete),
            self.bus.subscribe(EventKind.DROP, self._on_drop),
            self.bus.subscribe(EventKind.PASTE, self._on_drop),
        ]
        self.logger.info("Event handlers registered")

    def unregister_handlers(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    @log_async_execution_time
    async def sync(self) -> SyncResult:
        """Run a full reconciliation pass."""
        return await self.engine.sync()

    async def upload_paths(self, paths: Sequence[Union[str, Path]]) -> List[UploadResult]:
        """Upload files from disk as if they had been dropped into the vault."""
        files = []
        for path in paths:
            path = Path(path)
            try:
                files.append(DroppedFile(name=path.name, content=path.read_bytes()))
            except OSError as e:
                raise LocalIOError(f"Failed to read {path}: {e}")

        return await self.engine.handle_drop(FilesDroppedEvent(files=files, kind=EventKind.DROP))

    async def delete(self, name: str) -> DeletionResult:
        """Propagate the deletion of a vault file by name."""
        return await self.propagator.handle_delete(FileDeletedEvent(name=name, path=name))

    def begin_authorization(self) -> str:
        return self.credential_store.begin_authorization()

    async def complete_authorization(self, authorization_code: str) -> None:
        try:
            await self.credential_store.complete_authorization(authorization_code)
        except Exception:
            self.notifier.error("Authentication failed.")
            raise
        self.notifier.info("Authentication successful!")

    def get_status(self) -> Dict[str, Any]:
        """Summary of auth state, target and the last pass."""
        config = self.config_store.config
        target = config.sync_target
        last = self.engine.last_result

        return {
            "auth_state": self.credential_store.state.value,
            "folder_id": target.remote_folder_id,
            "file_directory": target.local_directory_path,
            "last_sync": None if last is None else {
                "success": last.success,
                "uploaded": last.uploaded,
                "failed": last.failed,
                "skipped": len(last.skipped),
                "error": last.error_message,
                "duration": last.sync_duration,
            },
            "recent_notices": self.notifier.messages()[-10:],
        }

    async def _on_delete(self, event: FileDeletedEvent) -> DeletionResult:
        return await self.propagator.handle_delete(event)

    async def _on_drop(self, event: FilesDroppedEvent) -> List[UploadResult]:
        return await self.engine.handle_drop(event)
