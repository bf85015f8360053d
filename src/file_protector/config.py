"""Configuration management for file-protector."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .options import ProtectionModes, ProtectionOptions

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a YAML/CLI value as a boolean.

    Args:
        value: Raw value (bool, int, str or None).
        default: Returned when value is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


@dataclass
class ProtectorConfig:
    """Persistent settings for file-protector.

    The password is deliberately not part of the configuration.
    """

    # Directory search
    search_pattern: str = "*"
    recursive: bool = False

    # Allowed operations
    encrypt: bool = True
    decrypt: bool = True

    # Seconds allowed per file
    file_timeout: float = 1.0

    # Replace existing destination files
    overwrite: bool = False

    # Wait for Enter before exiting after a failed run
    pause_on_failure: bool = False

    # Logging
    log_file: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / ".config"
        return base / "file-protector" / "config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> ProtectorConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            msg = f"Invalid YAML in {config_path}: {e}"
            raise ValueError(msg) from e

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> ProtectorConfig:
        """Create config from dictionary."""
        config = cls()

        if "search_pattern" in data:
            config.search_pattern = str(data["search_pattern"])
        config.recursive = parse_bool(data.get("recursive"), config.recursive)
        config.encrypt = parse_bool(data.get("encrypt"), config.encrypt)
        config.decrypt = parse_bool(data.get("decrypt"), config.decrypt)
        if "file_timeout" in data:
            config.file_timeout = float(data["file_timeout"])
            if config.file_timeout <= 0:
                msg = "file_timeout must be positive"
                raise ValueError(msg)
        config.overwrite = parse_bool(data.get("overwrite"), config.overwrite)
        config.pause_on_failure = parse_bool(data.get("pause_on_failure"), config.pause_on_failure)

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if logging_cfg.get("file"):
                config.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        return config

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "search_pattern": self.search_pattern,
            "recursive": self.recursive,
            "encrypt": self.encrypt,
            "decrypt": self.decrypt,
            "file_timeout": self.file_timeout,
            "overwrite": self.overwrite,
            "pause_on_failure": self.pause_on_failure,
            "logging": {
                "file": str(self.log_file) if self.log_file else None,
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def to_options(self, key: bytes | None = None) -> ProtectionOptions:
        """Build the protection options for a run.

        Args:
            key: Optional key material (from the password).

        Returns:
            Immutable options shared by the whole batch.

        """
        return ProtectionOptions(
            key=key,
            modes=ProtectionModes(encrypt=self.encrypt, decrypt=self.decrypt),
            search_pattern=self.search_pattern,
            recursive=self.recursive,
        )
