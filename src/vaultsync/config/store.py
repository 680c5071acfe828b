"""Persistent store for the sync configuration record (JSON or YAML)."""

import asyncio
import functools
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .schema import VaultSyncConfig
from ..exceptions import ConfigError
from ..utils.logging import get_logger


class ConfigStore:
    """Loads the configuration record with defaults and saves it on every change."""

    def __init__(self, file_path: Union[str, Path]):
        """Initialize the store.

        Args:
            file_path: Path to the configuration file. ``.yaml``/``.yml``
                files are read and written as YAML, everything else as JSON.
        """
        self.file_path = Path(file_path)
        self.logger = get_logger(self.__class__.__name__)
        self._config: Optional[VaultSyncConfig] = None

    @property
    def config(self) -> VaultSyncConfig:
        """Current configuration, loading it on first access."""
        if self._config is None:
            return self.load()
        return self._config

    def load(self) -> VaultSyncConfig:
        """Load the configuration file, filling unset fields with defaults.

        A missing file yields the default record.

        Raises:
            ConfigError: If the file exists but cannot be parsed or validated
        """
        if not self.file_path.exists():
            self.logger.info("No configuration file found, using defaults", file_path=str(self.file_path))
            self._config = VaultSyncConfig()
            return self._config

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                if self._is_yaml():
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML format: {e}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON format: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration: {e}")

        try:
            self._config = VaultSyncConfig.model_validate(data or {})
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}")

        self.logger.info(
            "Configuration loaded",
            file_path=str(self.file_path),
            folder_id=self._config.folder_id or "root",
            file_directory=self._config.file_directory,
            authenticated=self._config.has_tokens
        )
        return self._config

    def save(self) -> None:
        """Write the current configuration to disk.

        Raises:
            ConfigError: If the file cannot be written
        """
        data = self.config.to_storage_dict()
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.file_path, "w", encoding="utf-8") as f:
                if self._is_yaml():
                    yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True)
                else:
                    json.dump(data, f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save configuration: {e}")

        self.logger.debug("Configuration saved", file_path=str(self.file_path))

    def update(self, **changes: Any) -> VaultSyncConfig:
        """Apply field changes and persist them immediately.

        Args:
            **changes: Field names (snake_case) and their new values

        Returns:
            The updated configuration
        """
        unknown = set(changes) - set(VaultSyncConfig.model_fields)
        if unknown:
            raise ConfigError(f"Unknown configuration fields: {sorted(unknown)}")

        merged: Dict[str, Any] = self.config.model_dump()
        merged.update(changes)

        try:
            self._config = VaultSyncConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}")

        self.save()
        self.logger.info("Configuration updated", fields=sorted(changes))
        return self._config

    async def update_async(self, **changes: Any) -> VaultSyncConfig:
        """Like ``update``, but writes the file off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.update, **changes))

    def _is_yaml(self) -> bool:
        return self.file_path.suffix.lower() in [".yaml", ".yml"]
