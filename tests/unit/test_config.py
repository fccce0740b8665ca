"""
Unit tests for chatlink.config.

Tests defaults, TOML merging, environment overrides and validation.
"""

from pathlib import Path

import pytest

from chatlink.config import DEFAULT_CONFIG, Config
from chatlink.connection import ConnectionOptions
from chatlink.constants import FILE_CHUNK_SIZE, RECEIVED_DIR
from chatlink.errors import ConfigError, ErrorCode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove CHATLINK_* variables leaking in from the environment."""
    import os

    for name in list(os.environ):
        if name.startswith("CHATLINK_"):
            monkeypatch.delenv(name)


class TestConfig:
    """Test configuration loading."""

    def test_defaults_without_file(self, temp_dir: Path):
        """Test that a missing file yields the defaults."""
        config = Config(temp_dir / "missing.toml")

        assert config.get("network", "port") == DEFAULT_CONFIG["network"]["port"]
        assert config.get("limits", "chunk_size") == FILE_CHUNK_SIZE
        assert config.get("storage", "received_dir") == RECEIVED_DIR
        assert config.get("nope", "key", "fallback") == "fallback"

    def test_defaults_not_mutated(self, temp_dir: Path):
        """Test that changing one config leaves DEFAULT_CONFIG alone."""
        config = Config(temp_dir / "missing.toml")
        config.set("network", "port", 6000)

        assert DEFAULT_CONFIG["network"]["port"] != 6000

    def test_file_merges_with_defaults(self, temp_dir: Path):
        """Test that file values override only the keys they name."""
        path = temp_dir / "chatlink.toml"
        path.write_text('[network]\nport = 6001\n\n[storage]\nreceived_dir = "inbox"\n')

        config = Config(path)

        assert config.get("network", "port") == 6001
        assert config.get("network", "host") == DEFAULT_CONFIG["network"]["host"]
        assert config.get("storage", "received_dir") == "inbox"

    def test_invalid_toml(self, temp_dir: Path):
        """Test that unparsable files raise ConfigError."""
        path = temp_dir / "chatlink.toml"
        path.write_text("[network\nport = ")

        with pytest.raises(ConfigError) as exc_info:
            Config(path)

        assert exc_info.value.code == ErrorCode.E704_CONFIG_PARSE_ERROR

    def test_env_override(self, temp_dir: Path, monkeypatch):
        """Test CHATLINK_SECTION_KEY overrides with type conversion."""
        monkeypatch.setenv("CHATLINK_NETWORK_PORT", "7001")
        monkeypatch.setenv("CHATLINK_LOGGING_CONSOLE_LOGGING", "no")
        monkeypatch.setenv("CHATLINK_STORAGE_RECEIVED_DIR", "/tmp/in")

        config = Config(temp_dir / "missing.toml")

        assert config.get("network", "port") == 7001
        assert config.get("logging", "console_logging") is False
        assert config.get("storage", "received_dir") == "/tmp/in"

    def test_env_override_fractional_timeout(self, temp_dir: Path, monkeypatch):
        """Test that timeouts accept fractional seconds from the environment."""
        monkeypatch.setenv("CHATLINK_NETWORK_READ_TIMEOUT", "0.5")
        monkeypatch.setenv("CHATLINK_NETWORK_CONNECT_TIMEOUT", "2.25")

        config = Config(temp_dir / "missing.toml")

        assert config.get("network", "read_timeout") == 0.5
        assert config.get("network", "connect_timeout") == 2.25
        assert ConnectionOptions.from_config(config).read_timeout == 0.5

    def test_env_override_fractional_after_integer_file_value(self, temp_dir: Path, monkeypatch):
        """Test that an integer in the file does not force integer parsing."""
        path = temp_dir / "chatlink.toml"
        path.write_text("[network]\nwrite_timeout = 3\n")
        monkeypatch.setenv("CHATLINK_NETWORK_WRITE_TIMEOUT", "1.5")

        config = Config(path)

        assert config.get("network", "write_timeout") == 1.5

    def test_env_override_invalid_value(self, temp_dir: Path, monkeypatch):
        """Test that unconvertible environment values are rejected."""
        monkeypatch.setenv("CHATLINK_NETWORK_PORT", "not-a-port")

        with pytest.raises(ConfigError) as exc_info:
            Config(temp_dir / "missing.toml")

        assert exc_info.value.code == ErrorCode.E703_INVALID_CONFIG

    @pytest.mark.parametrize(
        "content",
        [
            "[network]\nport = 70000\n",
            "[limits]\nchunk_size = 0\n",
            "[network]\nread_timeout = -1\n",
        ],
    )
    def test_validation(self, temp_dir: Path, content: str):
        """Test that out of range values are rejected."""
        path = temp_dir / "chatlink.toml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            Config(path)

    def test_save_and_reload(self, temp_dir: Path):
        """Test that saved configuration loads back identically."""
        path = temp_dir / "sub" / "chatlink.toml"
        config = Config(path)
        config.set("network", "port", 6500)
        config.set("storage", "received_dir", 'C:\\in "box"')
        config.save()

        reloaded = Config(path)

        assert reloaded.to_dict() == config.to_dict()

    def test_create_example(self, temp_dir: Path):
        """Test that the example file parses to the defaults."""
        path = temp_dir / "example.toml"
        Config.create_example(path)

        assert path.read_text().startswith("# ChatLink Configuration File")
        assert Config(path).to_dict() == DEFAULT_CONFIG


class TestConnectionOptionsFromConfig:
    """Test building connection options from configuration."""

    def test_zero_timeouts_mean_none(self, temp_dir: Path):
        options = ConnectionOptions.from_config(Config(temp_dir / "missing.toml"))

        assert options.read_timeout is None
        assert options.write_timeout is None
        assert options.chunk_size == FILE_CHUNK_SIZE

    def test_values_carried_over(self, temp_dir: Path):
        path = temp_dir / "chatlink.toml"
        path.write_text(
            "[network]\nread_timeout = 2.5\n\n"
            "[limits]\nchunk_size = 4096\nmax_file_size = 100\n\n"
            '[storage]\nreceived_dir = "inbox"\n'
        )

        options = ConnectionOptions.from_config(Config(path))

        assert options.read_timeout == 2.5
        assert options.chunk_size == 4096
        assert options.max_file_size == 100
        assert options.received_dir == "inbox"
