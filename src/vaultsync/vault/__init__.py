"""Local vault abstraction, filesystem implementation and enumeration."""

from .base import (
    BaseVault,
    LocalFileRecord,
    VaultEntry,
    file_extension,
    join_vault_path,
    normalize_vault_path,
)
from .enumerator import (
    DEFAULT_MIME_TYPE,
    MIME_TYPES,
    LocalFileEnumerator,
    get_mime_type,
    mime_type_for_name,
)
from .filesystem import FilesystemVault

__all__ = [
    "BaseVault",
    "LocalFileRecord",
    "VaultEntry",
    "file_extension",
    "join_vault_path",
    "normalize_vault_path",
    "DEFAULT_MIME_TYPE",
    "MIME_TYPES",
    "LocalFileEnumerator",
    "get_mime_type",
    "mime_type_for_name",
    "FilesystemVault",
]
