"""
ChatLink - Configuration Management

This module handles loading, merging, and managing configuration from
TOML files and environment variables. Supports default values and
runtime configuration updates.
"""

import copy
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Python 3.11+ has tomllib built-in, older versions need tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None

from .constants import (
    CONFIG_FILENAME,
    CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_SERVER_PORT,
    ENV_PREFIX,
    FILE_CHUNK_SIZE,
    MAX_FILE_SIZE,
    MAX_NAME_LENGTH,
    MAX_TEXT_LENGTH,
    READ_TIMEOUT,
    RECEIVED_DIR,
    WRITE_TIMEOUT,
)
from .errors import ConfigError, ErrorCode
from .utils import validate_port

# Default configuration dictionary
DEFAULT_CONFIG: Dict[str, Any] = {
    "network": {
        "host": DEFAULT_HOST,
        "port": DEFAULT_SERVER_PORT,
        "connect_timeout": CONNECT_TIMEOUT,
        "read_timeout": READ_TIMEOUT,
        "write_timeout": WRITE_TIMEOUT,
    },
    "limits": {
        "max_text_length": MAX_TEXT_LENGTH,
        "max_name_length": MAX_NAME_LENGTH,
        "max_file_size": MAX_FILE_SIZE,
        "chunk_size": FILE_CHUNK_SIZE,
    },
    "storage": {
        "received_dir": RECEIVED_DIR,
    },
    "logging": {
        "level": "INFO",
        "file": "",
        "console_logging": True,
    },
}


class Config:
    """Configuration manager for ChatLink.

    Loads configuration from a TOML file, merges it with defaults,
    and applies environment variable overrides.

    Attributes:
        config_path: Path to the configuration file
        data: Configuration dictionary
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file (optional)
                If not provided, ``chatlink.toml`` in the working directory is used
        """
        if config_path is None:
            config_path = Path.cwd() / CONFIG_FILENAME

        self.config_path = Path(config_path)
        self.data = self._load_config()
        self._validate()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file and merge with defaults.

        Returns:
            Merged configuration dictionary

        Raises:
            ConfigError: If configuration loading or parsing fails
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path.exists():
            if tomllib is None:
                raise ConfigError(
                    ErrorCode.E701_CONFIG_LOAD_FAILED,
                    "TOML library not available. Install tomli for Python < 3.11",
                )

            try:
                with open(self.config_path, "rb") as f:
                    file_config = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigError(
                    ErrorCode.E704_CONFIG_PARSE_ERROR,
                    f"Failed to parse configuration file: {e}",
                    {"path": str(self.config_path), "error": str(e)},
                )

            config = self._merge_config(config, file_config)

        return self._apply_env_overrides(config)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override config into base config."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: CHATLINK_SECTION_KEY
        For example: CHATLINK_NETWORK_PORT=5001

        Raises:
            ConfigError: If a value cannot be converted to the setting's type
        """
        for section, settings in config.items():
            if not isinstance(settings, dict):
                continue

            for key, current in settings.items():
                env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
                env_value = os.environ.get(env_var)
                if env_value is None:
                    continue

                # Convert to the type of the default so a file value cannot narrow it
                expected = DEFAULT_CONFIG.get(section, {}).get(key, current)
                try:
                    if isinstance(expected, bool):
                        settings[key] = env_value.lower() in ("true", "1", "yes")
                    elif isinstance(expected, int):
                        settings[key] = int(env_value)
                    elif isinstance(expected, float):
                        settings[key] = float(env_value)
                    else:
                        settings[key] = env_value
                except ValueError:
                    raise ConfigError(
                        ErrorCode.E703_INVALID_CONFIG,
                        f"Invalid value for {env_var}: {env_value!r}",
                        {"variable": env_var, "value": env_value},
                    )

        return config

    def _validate(self) -> None:
        """Reject values the connection layer cannot work with.

        Raises:
            ConfigError: If a setting is out of range
        """
        port = self.get("network", "port")
        if not isinstance(port, int) or not validate_port(port):
            raise ConfigError(ErrorCode.E703_INVALID_CONFIG, f"Invalid port: {port}", {"port": port})

        for key in ("max_text_length", "max_name_length", "chunk_size"):
            value = self.get("limits", key)
            if not isinstance(value, int) or value <= 0:
                raise ConfigError(
                    ErrorCode.E703_INVALID_CONFIG,
                    f"limits.{key} must be a positive integer, got {value!r}",
                    {"key": key, "value": value},
                )

        for key in ("connect_timeout", "read_timeout", "write_timeout"):
            value = self.get("network", key)
            if not isinstance(value, (int, float)) or value < 0:
                raise ConfigError(
                    ErrorCode.E703_INVALID_CONFIG,
                    f"network.{key} must be a non-negative number, got {value!r}",
                    {"key": key, "value": value},
                )

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            section: Configuration section name
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self.data.get(section, {}).get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value."""
        if section not in self.data:
            self.data[section] = {}

        self.data[section][key] = value

    def save(self) -> None:
        """Save current configuration to file.

        Raises:
            ConfigError: If saving fails
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, "w") as f:
                self._write_toml(f, self.data)

        except OSError as e:
            raise ConfigError(
                ErrorCode.E702_CONFIG_SAVE_FAILED,
                f"Failed to save configuration: {e}",
                {"path": str(self.config_path), "error": str(e)},
            )

    @staticmethod
    def _write_toml(file, data: Dict[str, Any]) -> None:
        """Write configuration data as TOML format."""
        for section, settings in data.items():
            if isinstance(settings, dict):
                file.write(f"[{section}]\n")
                for key, value in settings.items():
                    if isinstance(value, bool):
                        file.write(f"{key} = {str(value).lower()}\n")
                    elif isinstance(value, (int, float)):
                        file.write(f"{key} = {value}\n")
                    elif isinstance(value, str):
                        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
                        file.write(f'{key} = "{escaped}"\n')
                file.write("\n")

    def to_dict(self) -> Dict[str, Any]:
        """Get a copy of the configuration as a dictionary."""
        return copy.deepcopy(self.data)

    @classmethod
    def create_example(cls, path: Path) -> None:
        """Create an example configuration file.

        Raises:
            ConfigError: If file creation fails
        """
        try:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)

            with open(path, "w") as f:
                f.write("# ChatLink Configuration File\n")
                f.write("# Generated example configuration\n\n")
                cls._write_toml(f, DEFAULT_CONFIG)

        except OSError as e:
            raise ConfigError(
                ErrorCode.E702_CONFIG_SAVE_FAILED,
                f"Failed to create example configuration: {e}",
                {"path": str(path), "error": str(e)},
            )
