"""Filesystem watcher that publishes vault deletions on the event bus."""

import asyncio
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .filesystem import FilesystemVault
from ..events.bus import EventBus, FileDeletedEvent
from ..utils.logging import get_logger


class VaultDeletionHandler(FileSystemEventHandler):
    """Turns watchdog deletion callbacks into FileDeletedEvent publications.

    Callbacks arrive on the observer thread; publishing is handed over to
    the event loop.
    """

    def __init__(self, vault: FilesystemVault, bus: EventBus, loop: asyncio.AbstractEventLoop):
        self.vault = vault
        self.bus = bus
        self.loop = loop
        self.logger = get_logger(self.__class__.__name__)

    def on_deleted(self, event: FileSystemEvent) -> None:
        # Folder deletions are not propagated
        if event.is_directory:
            return

        src_path = Path(str(event.src_path))
        try:
            vault_path = self.vault.relative(src_path)
        except ValueError:
            self.logger.warning("Deleted path is outside the vault", path=str(src_path))
            return

        self.logger.info("File deleted", name=src_path.name, path=vault_path)
        asyncio.run_coroutine_threadsafe(
            self.bus.publish(FileDeletedEvent(name=src_path.name, path=vault_path)),
            self.loop
        )


class VaultWatcher:
    """Watches a filesystem vault recursively for file deletions."""

    def __init__(self, vault: FilesystemVault, bus: EventBus):
        self.vault = vault
        self.bus = bus
        self.logger = get_logger(self.__class__.__name__)
        self._observer: Optional[Observer] = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if self._observer is not None:
            self.logger.warning("Vault watcher is already running")
            return

        handler = VaultDeletionHandler(self.vault, self.bus, loop or asyncio.get_running_loop())
        self._observer = Observer()
        self._observer.schedule(handler, str(self.vault.root), recursive=True)
        self._observer.start()
        self.logger.info("Vault watcher started", root=str(self.vault.root))

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        self.logger.info("Vault watcher stopped")
