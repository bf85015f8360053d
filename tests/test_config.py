"""Tests for configuration loading and saving."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from file_protector.config import ProtectorConfig, parse_bool
from file_protector.options import ProtectionModes


class TestParseBool:
    """Tests for boolean parsing helper."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (True, True),
            (False, False),
            ("true", True),
            ("True", True),
            ("yes", True),
            ("on", True),
            ("1", True),
            ("false", False),
            ("no", False),
            ("off", False),
            ("0", False),
            ("random", False),  # Non-standard strings are False
            ("", False),
        ],
    )
    def test_parse_bool_values(self, value: bool | str, expected: bool) -> None:
        """Test parsing various boolean representations."""
        assert parse_bool(value, False) == expected

    def test_parse_bool_none_uses_default(self) -> None:
        """Test that None returns the default value."""
        assert parse_bool(None, True) is True
        assert parse_bool(None, False) is False

    def test_parse_bool_integer(self) -> None:
        """Test parsing integer values."""
        assert parse_bool(1, False) is True
        assert parse_bool(0, True) is False


class TestProtectorConfigDefaults:
    """Tests for default configuration values."""

    def test_default_values(self) -> None:
        """Test that defaults match the command line defaults."""
        config = ProtectorConfig()

        assert config.search_pattern == "*"
        assert config.recursive is False
        assert config.encrypt is True
        assert config.decrypt is True
        assert config.file_timeout == 1.0
        assert config.overwrite is False
        assert config.pause_on_failure is False
        assert config.log_file is None
        assert config.log_level == "INFO"


class TestConfigLoad:
    """Tests for loading configuration from file."""

    def test_load_nonexistent_file(self, tmp_path: Path) -> None:
        """Test loading returns defaults when file doesn't exist."""
        config = ProtectorConfig.load(tmp_path / "nonexistent.yaml")
        assert config == ProtectorConfig()

    def test_load_empty_file(self, tmp_path: Path) -> None:
        """Test loading empty file returns defaults."""
        config_path = tmp_path / "empty.yaml"
        config_path.touch()

        assert ProtectorConfig.load(config_path) == ProtectorConfig()

    def test_load_partial_config(self, tmp_path: Path) -> None:
        """Test loading partial config merges with defaults."""
        config = self._load_config_from_text(tmp_path, "partial.yaml", "recursive: true\n")
        assert config.recursive is True
        assert config.search_pattern == "*"  # Default

    def test_load_full_config(self, tmp_path: Path) -> None:
        """Test loading full configuration."""
        config_path = tmp_path / "full.yaml"
        data = {
            "search_pattern": "*.docx",
            "recursive": True,
            "encrypt": True,
            "decrypt": False,
            "file_timeout": 2.5,
            "overwrite": True,
            "pause_on_failure": True,
            "logging": {
                "file": str(tmp_path / "protector.log"),
                "level": "debug",
            },
        }
        with config_path.open("w") as f:
            yaml.dump(data, f)

        config = ProtectorConfig.load(config_path)

        assert config.search_pattern == "*.docx"
        assert config.recursive is True
        assert config.decrypt is False
        assert config.file_timeout == 2.5
        assert config.overwrite is True
        assert config.pause_on_failure is True
        assert config.log_file == tmp_path / "protector.log"
        assert config.log_level == "DEBUG"

    def test_load_expands_tilde(self, tmp_path: Path) -> None:
        """Test that ~ is expanded in the log file path."""
        config = self._load_config_from_text(tmp_path, "tilde.yaml", "logging:\n  file: ~/logs/protector.log\n")
        assert str(config.log_file).startswith(str(Path.home()))

    def test_load_string_bool(self, tmp_path: Path) -> None:
        """Test that quoted booleans are parsed."""
        config = self._load_config_from_text(tmp_path, "string_bool.yaml", 'encrypt: "no"\n')
        assert config.encrypt is False

    def test_load_invalid_yaml_raises(self, tmp_path: Path) -> None:
        """Test that malformed YAML raises ValueError with context."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("search_pattern: [\n  unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            ProtectorConfig.load(config_path)

    def test_load_zero_timeout_raises(self, tmp_path: Path) -> None:
        """Test that a zero file_timeout raises ValueError."""
        config_path = tmp_path / "bad_timeout.yaml"
        config_path.write_text("file_timeout: 0\n")

        with pytest.raises(ValueError, match="file_timeout must be positive"):
            ProtectorConfig.load(config_path)

    @staticmethod
    def _load_config_from_text(tmp_path: Path, filename: str, content: str) -> ProtectorConfig:
        """Create a config file with given content and load it."""
        config_path = tmp_path / filename
        config_path.write_text(content)
        return ProtectorConfig.load(config_path)


class TestConfigSave:
    """Tests for saving configuration to file."""

    def test_save_creates_directory(self, tmp_path: Path) -> None:
        """Test that save creates parent directories."""
        config_path = tmp_path / "subdir" / "config.yaml"

        ProtectorConfig().save(config_path)

        assert config_path.exists()

    def test_save_and_load_roundtrip(self, tmp_path: Path) -> None:
        """Test that saved config can be loaded identically."""
        config_path = tmp_path / "roundtrip.yaml"

        original = ProtectorConfig()
        original.search_pattern = "*.pdf"
        original.recursive = True
        original.encrypt = False
        original.file_timeout = 10.0
        original.log_file = tmp_path / "log.txt"
        original.log_level = "DEBUG"

        original.save(config_path)

        assert ProtectorConfig.load(config_path) == original

    def test_save_never_contains_password(self, tmp_path: Path) -> None:
        """Test that the saved YAML only holds run settings."""
        config_path = tmp_path / "format.yaml"
        ProtectorConfig().save(config_path)

        with config_path.open() as f:
            data = yaml.safe_load(f)

        assert "password" not in data
        assert "key" not in data
        assert set(data["logging"]) == {"file", "level"}


class TestConfigPath:
    """Tests for config path handling."""

    def test_get_config_path_uses_appdata(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("APPDATA", str(tmp_path))
        assert ProtectorConfig.get_config_path() == tmp_path / "file-protector" / "config.yaml"

    def test_get_config_path_without_appdata(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("APPDATA", raising=False)
        expected = Path.home() / ".config" / "file-protector" / "config.yaml"
        assert ProtectorConfig.get_config_path() == expected

    def test_load_uses_default_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that load() uses the default path when no path is specified."""
        custom_default = tmp_path / "default_config.yaml"
        monkeypatch.setattr(ProtectorConfig, "get_config_path", classmethod(lambda cls: custom_default))

        custom_default.write_text("search_pattern: '*.txt'\n")

        assert ProtectorConfig.load().search_pattern == "*.txt"


class TestToOptions:
    """Tests for building protection options."""

    def test_to_options(self) -> None:
        config = ProtectorConfig(search_pattern="*.txt", recursive=True, decrypt=False)

        options = config.to_options(b"pw")

        assert options.key == b"pw"
        assert options.modes == ProtectionModes.encrypt_only()
        assert options.search_pattern == "*.txt"
        assert options.recursive is True

    def test_to_options_without_key(self) -> None:
        assert ProtectorConfig().to_options().key is None
