"""Local vault abstraction and file records."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import List, Optional


@dataclass(frozen=True)
class VaultEntry:
    """A child of a vault folder as reported by ``list_children``."""

    name: str
    path: str
    extension: str
    modified_time: Optional[datetime]
    is_file: bool = True


@dataclass(frozen=True)
class LocalFileRecord:
    """Snapshot of a local file taken at enumeration time.

    ``content`` stays None until the file is actually read for upload.
    """

    path: str
    name: str
    extension: str
    modified_time: Optional[datetime]
    content: Optional[bytes] = None

    @classmethod
    def from_entry(cls, entry: VaultEntry) -> "LocalFileRecord":
        return cls(
            path=entry.path,
            name=entry.name,
            extension=entry.extension,
            modified_time=entry.modified_time,
        )


def file_extension(name: str) -> str:
    """Extension without the leading dot, empty if there is none."""
    suffix = PurePosixPath(name).suffix
    return suffix[1:] if suffix else ""


def join_vault_path(directory: str, name: str) -> str:
    """Join a vault-relative directory and a file name.

    ``.`` and the empty string both denote the vault root.
    """
    directory = directory.strip().strip("/")
    if directory in ("", "."):
        return name
    return str(PurePosixPath(directory) / name)


def normalize_vault_path(path: str) -> str:
    """Normalize a vault-relative path (``./a//b.md`` -> ``a/b.md``)."""
    parts = [part for part in PurePosixPath(path.strip()).parts if part not in ("", ".", "/")]
    return "/".join(parts) if parts else "."


class BaseVault(ABC):
    """Interface the sync core needs from the host document vault.

    Paths are vault-relative, POSIX style.
    """

    @abstractmethod
    async def list_children(self, path: str) -> List[VaultEntry]:
        """List direct children of a folder.

        Raises:
            LocalIOError: If the path does not exist or is not a folder
        """
        pass

    @abstractmethod
    async def read_content(self, path: str) -> bytes:
        """Read the full content of a file.

        Raises:
            LocalIOError: If the file cannot be read
        """
        pass

    @abstractmethod
    async def rename(self, path: str, new_path: str) -> None:
        """Move a file to a new vault path.

        Raises:
            LocalIOError: If the move fails
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Whether a file exists at this vault path."""
        pass
