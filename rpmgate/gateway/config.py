"""
Configuration for the rpmgate HTTP gateway.

Loaded once at startup from an optional YAML file, then environment
variables, then command-line overrides (highest precedence).
"""
import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml


DEFAULT_INDEXER = ["createrepo"]
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_LOG_LEVEL = "info"
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

ENV_PREFIX = "RPMGATE_"
_FIELDS = ("root", "indexer", "host", "port", "log_level")


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable gateway configuration shared by all request handlers."""
    root: Optional[Path] = None
    indexer: List[str] = field(default_factory=lambda: list(DEFAULT_INDEXER))
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    def with_overrides(self, overrides: Dict[str, Any]) -> "GatewayConfig":
        """Return a copy with non-None values from overrides applied."""
        values = {}
        for key, value in overrides.items():
            if key not in _FIELDS:
                raise ValueError(f"Unknown configuration key: {key}")
            if value is None:
                continue
            values[key] = _coerce(key, value)
        return replace(self, **values)

    def validate(self) -> "GatewayConfig":
        """
        Check the configuration and prepare the root directory.

        Creates the root directory when it does not exist.

        Returns:
            Configuration with an absolute root path

        Raises:
            ValueError: If the root is missing or unusable, or other values
                are invalid
        """
        if self.root is None or str(self.root) == "":
            raise ValueError(f"Repository root is required (set {ENV_PREFIX}ROOT or --root)")

        if not self.indexer:
            raise ValueError("Indexer command must not be empty")

        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        root = Path(self.root).expanduser().resolve()
        if root.exists() and not root.is_dir():
            raise ValueError(f"Repository root {root} must refer to a directory")

        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ValueError(f"Cannot create repository root {root}: {e}")

        return replace(self, root=root)


def _coerce(key: str, value: Any) -> Any:
    if key == "root":
        if not isinstance(value, (str, os.PathLike)):
            raise ValueError(f"Invalid root: {value!r} (expected a path)")
        return Path(value).expanduser()
    if key == "indexer":
        if isinstance(value, str):
            return shlex.split(value)
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"Invalid indexer: {value!r} (expected a command string or list of strings)")
        return list(value)
    if key == "port":
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid port: {value}")
    if key == "log_level":
        return str(value).lower()
    return str(value)


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration values from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid YAML or not a mapping
    """
    config_file = Path(config_path).expanduser()
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    with open(config_file, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_file}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config in {config_file}: must be a YAML dict")

    return data


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect RPMGATE_* environment variables."""
    if environ is None:
        environ = os.environ
    return {key: environ.get(ENV_PREFIX + key.upper()) for key in _FIELDS}


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None
) -> GatewayConfig:
    """
    Build and validate the gateway configuration.

    Args:
        config_path: Optional YAML config file
        overrides: Values from the command line (None values are ignored)
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated GatewayConfig

    Raises:
        FileNotFoundError: If config_path doesn't exist
        ValueError: If the resulting configuration is invalid
    """
    config = GatewayConfig()
    if config_path:
        config = config.with_overrides(load_config_file(config_path))
    config = config.with_overrides(env_overrides(environ))
    if overrides:
        config = config.with_overrides(overrides)
    return config.validate()
