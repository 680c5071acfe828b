"""Vault implementation over a directory on the local filesystem."""

import asyncio
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from .base import BaseVault, VaultEntry, file_extension, normalize_vault_path
from ..exceptions import LocalIOError
from ..utils.logging import get_logger


class FilesystemVault(BaseVault):
    """A vault rooted at a local directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.logger = get_logger(self.__class__.__name__)

    def resolve(self, path: str) -> Path:
        """Map a vault path to an absolute filesystem path inside the root."""
        normalized = normalize_vault_path(path)
        target = self.root if normalized == "." else (self.root / normalized).resolve()

        if target != self.root and self.root not in target.parents:
            raise LocalIOError(f"Path escapes the vault: {path}")
        return target

    def relative(self, absolute: Union[str, Path]) -> str:
        """Map an absolute filesystem path back to a vault path."""
        absolute = Path(absolute)
        try:
            return absolute.relative_to(self.root).as_posix()
        except ValueError:
            return absolute.resolve().relative_to(self.root).as_posix()

    async def list_children(self, path: str) -> List[VaultEntry]:
        folder = self.resolve(path)

        def scan() -> List[VaultEntry]:
            if not folder.is_dir():
                raise LocalIOError(f"The specified folder does not exist or is not a folder: {path}")

            entries = []
            for child in sorted(folder.iterdir()):
                try:
                    stat = child.stat()
                except OSError as e:
                    # Dangling symlink, or removed since iterdir()
                    self.logger.warning("Skipping unreadable vault entry", path=str(child), error=str(e))
                    continue
                entries.append(VaultEntry(
                    name=child.name,
                    path=self.relative(child),
                    extension=file_extension(child.name) if child.is_file() else "",
                    modified_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    is_file=child.is_file(),
                ))
            return entries

        try:
            return await self._run(scan)
        except OSError as e:
            raise LocalIOError(f"Failed to list {path}: {e}")

    async def read_content(self, path: str) -> bytes:
        target = self.resolve(path)
        try:
            return await self._run(target.read_bytes)
        except OSError as e:
            raise LocalIOError(f"Failed to read {path}: {e}")

    async def rename(self, path: str, new_path: str) -> None:
        source = self.resolve(path)
        destination = self.resolve(new_path)

        def move() -> None:
            if not source.is_file():
                raise LocalIOError(f"Source file does not exist: {path}")
            if destination.exists():
                raise LocalIOError(f"Destination already exists: {new_path}")
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(destination))

        try:
            await self._run(move)
        except OSError as e:
            raise LocalIOError(f"Failed to move {path} to {new_path}: {e}")

        self.logger.info("Moved file in vault", source=path, destination=new_path)

    async def exists(self, path: str) -> bool:
        try:
            target = self.resolve(path)
        except LocalIOError:
            return False
        return target.is_file()

    async def _run(self, func):
        return await asyncio.get_running_loop().run_in_executor(None, func)
