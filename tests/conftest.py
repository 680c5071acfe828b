"""Shared fixtures for vaultsync tests."""

import asyncio
import itertools
from typing import Dict, List, Optional, Set, Tuple

import pytest

from vaultsync.api_clients.base import BaseStorageClient, RemoteFileRecord
from vaultsync.config.store import ConfigStore
from vaultsync.core.notifications import Notifier
from vaultsync.exceptions import NetworkError, NotFoundError
from vaultsync.vault.filesystem import FilesystemVault


class FakeStorageClient(BaseStorageClient):
    """In-memory folder-scoped object store recording every call."""

    def __init__(self, files: Optional[Dict[str, List[Tuple[str, str]]]] = None):
        super().__init__()
        self._ids = itertools.count(1000)
        # folder_id -> list of (id, name)
        self.folders: Dict[str, List[Tuple[str, str]]] = {k: list(v) for k, v in (files or {}).items()}
        self.uploaded: List[Tuple[str, str, str, bytes]] = []
        self.deleted: List[str] = []
        self.list_calls = 0
        self.fail_uploads: Set[str] = set()
        self.fail_list = False
        self.active_uploads = 0
        self.max_active_uploads = 0
        self.upload_delay = 0.0

    async def list_files(self, folder_id: str) -> Set[RemoteFileRecord]:
        self.list_calls += 1
        if self.fail_list:
            raise NetworkError("connection reset")
        return {RemoteFileRecord(id=i, name=n) for i, n in self.folders.get(folder_id, [])}

    async def create_file(self, folder_id: str, name: str, mime_type: str, content: bytes) -> RemoteFileRecord:
        self.active_uploads += 1
        self.max_active_uploads = max(self.max_active_uploads, self.active_uploads)
        try:
            await asyncio.sleep(self.upload_delay)
            if name in self.fail_uploads:
                raise NetworkError(f"upload of {name} failed")
            file_id = str(next(self._ids))
            self.folders.setdefault(folder_id, []).append((file_id, name))
            self.uploaded.append((folder_id, name, mime_type, content))
            return RemoteFileRecord(id=file_id, name=name)
        finally:
            self.active_uploads -= 1

    async def delete_file(self, file_id: str) -> None:
        for folder_id, entries in self.folders.items():
            for entry in entries:
                if entry[0] == file_id:
                    entries.remove(entry)
                    self.deleted.append(file_id)
                    return
        raise NotFoundError(f"{file_id} not found")

    @property
    def uploaded_names(self) -> List[str]:
        return [name for _, name, _, _ in self.uploaded]


@pytest.fixture
def fake_client():
    return FakeStorageClient()


@pytest.fixture
def vault_dir(tmp_path):
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def vault(vault_dir):
    return FilesystemVault(vault_dir)


@pytest.fixture
def config_store(tmp_path):
    store = ConfigStore(tmp_path / "data" / "vaultsync.json")
    store.load()
    store.update(folder_id="folder_123", file_directory="synced")
    return store


@pytest.fixture
def notifier():
    return Notifier()
