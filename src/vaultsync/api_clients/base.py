"""Base storage client interface and common data structures."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Set

from ..utils.logging import get_logger


@dataclass(frozen=True)
class RemoteFileRecord:
    """A remote object: identity is ``id``, ``name`` is the matching key."""

    id: str
    name: str


class BaseStorageClient(ABC):
    """Abstract folder-scoped remote object store."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def list_files(self, folder_id: str) -> Set[RemoteFileRecord]:
        """List all non-trashed objects whose parent is ``folder_id``.

        Raises:
            AuthError: If credentials are invalid and cannot be refreshed
            NetworkError: On transport failure
            RemoteApiError: On any other API error
        """
        pass

    @abstractmethod
    async def create_file(
        self,
        folder_id: str,
        name: str,
        mime_type: str,
        content: bytes
    ) -> RemoteFileRecord:
        """Upload ``content`` as a new object under ``folder_id``.

        No duplicate check is done; that is the caller's responsibility.
        """
        pass

    @abstractmethod
    async def delete_file(self, file_id: str) -> None:
        """Delete an object by id.

        Raises:
            NotFoundError: If no object has this id
        """
        pass
