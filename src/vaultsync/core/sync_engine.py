"""Reconciliation engine: uploads local files missing from the remote folder."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .notifications import Notifier
from ..api_clients.base import BaseStorageClient
from ..config.store import ConfigStore
from ..events.bus import FilesDroppedEvent
from ..exceptions import LocalIOError, VaultSyncError
from ..utils.logging import get_logger, log_async_execution_time
from ..vault.base import BaseVault, LocalFileRecord, join_vault_path, normalize_vault_path
from ..vault.enumerator import LocalFileEnumerator, get_mime_type, mime_type_for_name


@dataclass
class UploadResult:
    """Outcome of a single file upload."""

    name: str
    success: bool
    mime_type: str = ""
    file_id: Optional[str] = None
    error_message: Optional[str] = None
    relocated_to: Optional[str] = None


@dataclass
class SyncResult:
    """Result of a reconciliation pass."""

    success: bool = False
    uploads: List[UploadResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    error_message: Optional[str] = None
    sync_duration: Optional[float] = None

    @property
    def uploaded(self) -> List[str]:
        """Names uploaded successfully."""
        return [u.name for u in self.uploads if u.success]

    @property
    def failed(self) -> List[str]:
        """Names whose upload failed."""
        return [u.name for u in self.uploads if not u.success]


class ReconciliationEngine:
    """Compares local and remote listings by name and uploads the difference.

    Sync is create-only: names already present remotely are never
    re-uploaded and nothing is deleted here.
    """

    def __init__(
        self,
        client: BaseStorageClient,
        vault: BaseVault,
        config_store: ConfigStore,
        notifier: Optional[Notifier] = None,
        max_concurrent_uploads: int = 4
    ):
        """Initialize the engine.

        Args:
            client: Remote storage client
            vault: Local vault abstraction
            config_store: Source of the sync target
            notifier: Receives user-facing notices
            max_concurrent_uploads: Upper bound on parallel uploads in a pass
        """
        self.client = client
        self.vault = vault
        self.enumerator = LocalFileEnumerator(vault)
        self.config_store = config_store
        self.notifier = notifier or Notifier()
        self.max_concurrent_uploads = max(1, max_concurrent_uploads)
        self.logger = get_logger(self.__class__.__name__)

        self.last_result: Optional[SyncResult] = None

    @log_async_execution_time
    async def sync(self) -> SyncResult:
        """Run one reconciliation pass.

        Returns:
            SyncResult; ``success`` is False only when the remote listing
            failed. Individual upload failures are reported per file.
        """
        start_time = datetime.now()
        target = self.config_store.config.sync_target
        result = SyncResult()

        self.logger.info(
            "Starting reconciliation pass",
            folder_id=target.remote_folder_id,
            directory=target.local_directory_path
        )

        try:
            remote_files = await self.client.list_files(target.remote_folder_id)
        except VaultSyncError as e:
            self.logger.error("Failed to list remote folder", folder_id=target.remote_folder_id, error=str(e))
            self.notifier.error("Failed to sync files with Google Drive.")
            result.error_message = str(e)
            result.sync_duration = (datetime.now() - start_time).total_seconds()
            self.last_result = result
            return result

        remote_names = {record.name for record in remote_files}
        local_files = await self.enumerator.enumerate(target.local_directory_path)

        to_upload = [record for record in local_files if record.name not in remote_names]
        result.skipped = [record.name for record in local_files if record.name in remote_names]

        self.logger.info(
            "Computed upload set",
            local_files=len(local_files),
            remote_files=len(remote_files),
            to_upload=len(to_upload)
        )

        if to_upload:
            semaphore = asyncio.Semaphore(self.max_concurrent_uploads)

            async def upload_bounded(record: LocalFileRecord) -> UploadResult:
                async with semaphore:
                    return await self._upload_local_file(record, target.remote_folder_id)

            result.uploads = list(await asyncio.gather(*(upload_bounded(r) for r in to_upload)))

        result.success = True
        result.sync_duration = (datetime.now() - start_time).total_seconds()
        self.last_result = result

        self.logger.info(
            "Reconciliation pass completed",
            uploaded=len(result.uploaded),
            failed=len(result.failed),
            skipped=len(result.skipped),
            duration=f"{result.sync_duration:.2f}s"
        )
        return result

    @log_async_execution_time
    async def handle_drop(self, event: FilesDroppedEvent) -> List[UploadResult]:
        """Upload dropped or pasted files one at a time, in event order.

        Each successful upload is followed by moving the vault file of the
        same name into the configured directory.
        """
        target = self.config_store.config.sync_target
        results: List[UploadResult] = []

        self.logger.info("Handling dropped files", kind=event.kind.value, files_count=len(event.files))

        for dropped in event.files:
            mime_type = dropped.mime_type or mime_type_for_name(dropped.name)
            upload = await self.upload_file(dropped.name, dropped.content, mime_type, target.remote_folder_id)

            if upload.success:
                upload.relocated_to = await self._relocate(dropped.name, target.local_directory_path)

            results.append(upload)

        return results

    async def upload_file(self, name: str, content: bytes, mime_type: str, folder_id: str) -> UploadResult:
        """Upload one file, reporting the outcome instead of raising."""
        try:
            record = await self.client.create_file(folder_id, name, mime_type, content)
        except VaultSyncError as e:
            self.logger.error("Error uploading to Google Drive", file_name=name, error=str(e))
            self.notifier.error("Failed to upload file to Google Drive.")
            return UploadResult(name=name, success=False, mime_type=mime_type, error_message=str(e))
        except Exception as e:
            self.logger.exception("Unexpected error uploading to Google Drive", file_name=name)
            self.notifier.error("Failed to upload file to Google Drive.")
            return UploadResult(name=name, success=False, mime_type=mime_type, error_message=str(e))

        self.notifier.info(f"Uploaded {name} to Google Drive.")
        return UploadResult(name=name, success=True, mime_type=mime_type, file_id=record.id)

    async def _upload_local_file(self, record: LocalFileRecord, folder_id: str) -> UploadResult:
        mime_type = get_mime_type(record.extension)

        try:
            loaded = await self.enumerator.read(record)
        except LocalIOError as e:
            self.logger.error("Failed to read local file", path=record.path, error=str(e))
            return UploadResult(name=record.name, success=False, mime_type=mime_type, error_message=str(e))

        return await self.upload_file(record.name, loaded.content or b"", mime_type, folder_id)

    async def _relocate(self, name: str, directory: str) -> Optional[str]:
        """Move the vault file ``name`` into ``directory``.

        Returns:
            The new vault path, or None when nothing was moved
        """
        source = normalize_vault_path(name)
        destination = normalize_vault_path(join_vault_path(directory, name))

        if source == destination:
            return None

        try:
            if not await self.vault.exists(source):
                self.logger.debug("No vault file to relocate", path=source)
                return None
            await self.vault.rename(source, destination)
        except LocalIOError as e:
            self.logger.error("Error moving the file", source=source, destination=destination, error=str(e))
            return None

        return destination
