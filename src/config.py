"""Configuration loading and validation module.

This module handles YAML configuration loading and provides a typed
AppConfig dataclass consumed by the scheduler, stores and CLI. When no
configuration file is given, values fall back to environment variables.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 25565
DEFAULT_PING_INTERVAL_SEC = 0
DEFAULT_DATA_DIR = "data"
DEFAULT_HISTORY_CAPACITY = 15000


class ConfigError(Exception):
    """Raised when configuration is invalid or missing required fields."""
    pass


@dataclass(frozen=True)
class Config:
    """Game server target and probe cadence.

    A ping_interval_sec of 0 disables the scheduler.
    """
    host: str
    port: int
    ping_interval_sec: int = DEFAULT_PING_INTERVAL_SEC

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "pingIntervalSec": self.ping_interval_sec,
        }


@dataclass(frozen=True)
class StorageConfig:
    """Location of the persisted history and statistics files."""
    data_dir: str
    history_capacity: int = DEFAULT_HISTORY_CAPACITY


@dataclass(frozen=True)
class AppConfig:
    """Root configuration dataclass."""
    server: Config
    storage: StorageConfig


def _get_nested(data: dict, path: str, required: bool = True, default: Any = None) -> Any:
    """Get a nested value from a dictionary using dot notation.

    Args:
        data: The dictionary to search
        path: Dot-separated path to the value (e.g., "server.host")
        required: If True, raises ConfigError when value is missing
        default: Default value if not required and missing

    Returns:
        The value at the path, or default if not required and missing

    Raises:
        ConfigError: If required value is missing
    """
    current = data
    for key in path.split("."):
        if not isinstance(current, dict):
            if required:
                raise ConfigError(f"Configuration path '{path}' is not a valid nested structure")
            return default
        if key not in current:
            if required:
                raise ConfigError(f"Missing required configuration field: {path}")
            return default
        current = current[key]
    return current


def _validate_type(value: Any, expected_type: type, field_name: str) -> None:
    """Validate that a value is of the expected type.

    Raises:
        ConfigError: If value is not of the expected type
    """
    if expected_type is int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(
                f"Field '{field_name}' must be an integer, got {type(value).__name__}"
            )
    elif not isinstance(value, expected_type):
        raise ConfigError(
            f"Field '{field_name}' must be of type {expected_type.__name__}, got {type(value).__name__}"
        )


def _validate_ranges(server: Config, storage: StorageConfig) -> None:
    if not server.host:
        raise ConfigError("server.host must not be empty")
    if not 1 <= server.port <= 65535:
        raise ConfigError("server.port must be between 1 and 65535")
    if server.ping_interval_sec < 0:
        raise ConfigError("server.ping_interval_seconds must be >= 0")
    if storage.history_capacity < 1:
        raise ConfigError("storage.history_capacity must be >= 1")


def load_config(path: str) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    # Server configuration
    _get_nested(data, "server")
    host = _get_nested(data, "server.host")
    _validate_type(host, str, "server.host")

    port = _get_nested(data, "server.port", required=False, default=DEFAULT_PORT)
    _validate_type(port, int, "server.port")

    ping_interval = _get_nested(
        data, "server.ping_interval_seconds", required=False, default=DEFAULT_PING_INTERVAL_SEC
    )
    _validate_type(ping_interval, int, "server.ping_interval_seconds")

    # Storage configuration
    _get_nested(data, "storage")
    data_dir = _get_nested(data, "storage.data_dir")
    _validate_type(data_dir, str, "storage.data_dir")

    history_capacity = _get_nested(
        data, "storage.history_capacity", required=False, default=DEFAULT_HISTORY_CAPACITY
    )
    _validate_type(history_capacity, int, "storage.history_capacity")

    server = Config(host=host, port=port, ping_interval_sec=ping_interval)
    storage = StorageConfig(data_dir=data_dir, history_capacity=history_capacity)
    _validate_ranges(server, storage)

    return AppConfig(server=server, storage=storage)


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Environment variable {name} must be an integer, got {raw!r}")


def config_from_env(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build configuration from MC_HOST, MC_PORT, PING_INTERVAL_SEC and DATA_DIR.

    Args:
        env: Mapping to read from (defaults to os.environ)

    Raises:
        ConfigError: If a numeric variable is malformed or out of range
    """
    if env is None:
        env = os.environ

    server = Config(
        host=env.get("MC_HOST") or DEFAULT_HOST,
        port=_env_int(env, "MC_PORT", DEFAULT_PORT),
        ping_interval_sec=_env_int(env, "PING_INTERVAL_SEC", DEFAULT_PING_INTERVAL_SEC),
    )
    storage = StorageConfig(data_dir=env.get("DATA_DIR") or DEFAULT_DATA_DIR)
    _validate_ranges(server, storage)

    return AppConfig(server=server, storage=storage)
