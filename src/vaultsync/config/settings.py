"""Application configuration settings."""

from typing import Optional, List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSettings(BaseSettings):
    """Google OAuth2 and Drive API configuration."""

    auth_uri: str = Field(default="https://accounts.google.com/o/oauth2/v2/auth")
    token_uri: str = Field(default="https://oauth2.googleapis.com/token")
    scopes: List[str] = Field(default=["https://www.googleapis.com/auth/drive.file"])
    api_version: str = Field(default="v3")

    model_config = SettingsConfigDict(env_prefix="VAULTSYNC_GOOGLE_")


class SyncSettings(BaseSettings):
    """Sync behaviour and runtime configuration."""

    config_path: str = Field(default="./data/vaultsync.json")
    vault_root: str = Field(default=".")
    max_concurrent_uploads: int = Field(default=4)
    request_timeout_seconds: float = Field(default=120.0)
    sync_interval_minutes: int = Field(default=0)
    watch_vault: bool = Field(default=True)

    model_config = SettingsConfigDict(env_prefix="VAULTSYNC_SYNC_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="console")
    file_path: Optional[str] = Field(default="./logs/vaultsync.log")

    model_config = SettingsConfigDict(env_prefix="VAULTSYNC_LOG_")


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="vaultsync")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")
    status_port: int = Field(default=0)

    # Sub-settings
    google: GoogleSettings = GoogleSettings()
    sync: SyncSettings = SyncSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_prefix="VAULTSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings
