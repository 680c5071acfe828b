"""Schema for the persisted sync configuration record."""

from dataclasses import dataclass
from typing import Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
ROOT_FOLDER_ID = "root"


@dataclass(frozen=True)
class SyncTarget:
    """Remote folder and local directory a session syncs between."""

    remote_folder_id: str
    local_directory_path: str


class VaultSyncConfig(BaseModel):
    """Flat key-value record persisted between sessions.

    Keys are stored in camelCase; snake_case field names are accepted too.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # OAuth client
    client_id: str = Field(default="", alias="clientId")
    client_secret: str = Field(default="", alias="clientSecret")
    redirect_uri: str = Field(default=DEFAULT_REDIRECT_URI, alias="redirectUri")
    authorization_code: str = Field(default="", alias="authorizationCode")

    # Tokens
    access_token: str = Field(default="", alias="accessToken")
    refresh_token: str = Field(default="", alias="refreshToken")
    token_expiry: int = Field(default=0, alias="tokenExpiry", description="Epoch seconds, 0 = unknown")

    # Sync target
    folder_id: str = Field(default="", alias="folderId")
    file_directory: str = Field(default=".", alias="fileDirectory")

    @field_validator("client_id", "client_secret", "folder_id", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("file_directory", mode="before")
    @classmethod
    def default_file_directory(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "."
        return v

    @property
    def has_client(self) -> bool:
        """Whether both client id and secret are set."""
        return bool(self.client_id and self.client_secret)

    @property
    def has_tokens(self) -> bool:
        """Whether an access/refresh token pair is stored."""
        return bool(self.access_token and self.refresh_token)

    @property
    def sync_target(self) -> SyncTarget:
        """Sync target derived from this record; empty folder id means Drive root."""
        return SyncTarget(
            remote_folder_id=self.folder_id or ROOT_FOLDER_ID,
            local_directory_path=self.file_directory,
        )

    def to_storage_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for persistence."""
        return self.model_dump(by_alias=True)
