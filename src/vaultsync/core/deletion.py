"""Propagates local file deletions to the remote folder."""

from dataclasses import dataclass
from typing import Optional

from .notifications import Notifier
from ..api_clients.base import BaseStorageClient
from ..config.store import ConfigStore
from ..events.bus import FileDeletedEvent
from ..exceptions import NotFoundError, VaultSyncError
from ..utils.logging import get_logger, log_async_execution_time


@dataclass
class DeletionResult:
    """Outcome of propagating one deletion."""

    name: str
    success: bool
    file_id: Optional[str] = None
    deleted: bool = False
    error_message: Optional[str] = None


class DeletionPropagator:
    """Deletes the remote object whose name matches a deleted local file."""

    def __init__(
        self,
        client: BaseStorageClient,
        config_store: ConfigStore,
        notifier: Optional[Notifier] = None
    ):
        self.client = client
        self.config_store = config_store
        self.notifier = notifier or Notifier()
        self.logger = get_logger(self.__class__.__name__)

    @log_async_execution_time
    async def handle_delete(self, event: FileDeletedEvent) -> DeletionResult:
        """Propagate a single deletion.

        No remote match is a silent no-op; so is an object that disappears
        between listing and deletion. Failures are not retried.
        """
        folder_id = self.config_store.config.sync_target.remote_folder_id
        name = event.name

        try:
            remote_files = await self.client.list_files(folder_id)

            # First match wins when several remote objects share the name
            match = next(
                (record for record in sorted(remote_files, key=lambda r: r.id) if record.name == name),
                None
            )
            if match is None:
                self.logger.debug("No remote file to delete", file_name=name, folder_id=folder_id)
                return DeletionResult(name=name, success=True)

            try:
                await self.client.delete_file(match.id)
            except NotFoundError:
                self.logger.info("Remote file already gone", file_name=name, file_id=match.id)
                return DeletionResult(name=name, success=True, file_id=match.id)

        except VaultSyncError as e:
            self.logger.error("Failed to delete remote file", file_name=name, error=str(e))
            self.notifier.error("File wasn't deleted")
            return DeletionResult(name=name, success=False, error_message=str(e))

        self.logger.info("Deleted remote file", file_name=name, file_id=match.id)
        self.notifier.info("File successfully deleted")
        return DeletionResult(name=name, success=True, file_id=match.id, deleted=True)
