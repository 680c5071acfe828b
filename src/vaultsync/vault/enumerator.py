"""Local file enumeration and content type resolution."""

import dataclasses
from typing import List

from .base import BaseVault, LocalFileRecord, file_extension, normalize_vault_path
from ..exceptions import LocalIOError
from ..utils.logging import get_logger


DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES = {
    "txt": "text/plain",
    "md": "text/markdown",
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "xml": "application/xml",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "rar": "application/vnd.rar",
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
}


def get_mime_type(extension: str) -> str:
    """Content type for an extension (with or without leading dot)."""
    return MIME_TYPES.get(extension.lower().lstrip("."), DEFAULT_MIME_TYPE)


def mime_type_for_name(name: str) -> str:
    return get_mime_type(file_extension(name))


class LocalFileEnumerator:
    """Lists upload candidates directly inside a vault directory."""

    def __init__(self, vault: BaseVault):
        self.vault = vault
        self.logger = get_logger(self.__class__.__name__)

    async def enumerate(self, directory: str) -> List[LocalFileRecord]:
        """List files directly inside ``directory``; subfolders are skipped.

        A missing directory, or one that is not a folder, is logged and
        treated as empty.
        """
        directory = normalize_vault_path(directory)

        try:
            entries = await self.vault.list_children(directory)
        except LocalIOError as e:
            self.logger.error(
                "The specified folder does not exist or is not a folder",
                directory=directory,
                error=str(e)
            )
            return []

        files = [LocalFileRecord.from_entry(entry) for entry in entries if entry.is_file]

        self.logger.debug("Enumerated local files", directory=directory, files_count=len(files))
        return files

    async def read(self, record: LocalFileRecord) -> LocalFileRecord:
        """Return a copy of ``record`` with its content loaded."""
        content = await self.vault.read_content(record.path)
        return dataclasses.replace(record, content=content)
