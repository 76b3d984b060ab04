"""Configuration loader for the gateway.

Builds an immutable ``GatewayConfig`` from built-in defaults, an optional
YAML file and environment variable overrides, in that order.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import yaml

from debuglogs_gateway.errors import ConfigError

DEFAULT_ALLOWED_ORIGINS = (
    "https://readlogs.pages.dev",
    "http://127.0.0.1:8080",
)
DEFAULT_UPSTREAM_URL = "https://debuglogs.org"
DEFAULT_PUBLIC_URL = "https://getlogs.warp.workers.dev"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")

CONFIG_PATH_ENV = "GATEWAY_CONFIG_PATH"

# field name -> environment variable
ENV_OVERRIDES = {
    "allowed_origins": "GATEWAY_ALLOWED_ORIGINS",
    "upstream_url": "GATEWAY_UPSTREAM_URL",
    "public_url": "GATEWAY_PUBLIC_URL",
    "connect_timeout": "GATEWAY_CONNECT_TIMEOUT",
    "read_timeout": "GATEWAY_READ_TIMEOUT",
    "chunk_size": "GATEWAY_CHUNK_SIZE",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
}


def _check_base_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"{name} must be an absolute http(s) URL, got {value!r}")
    if parsed.query or parsed.fragment:
        raise ConfigError(f"{name} must not carry a query or fragment, got {value!r}")


@dataclass(frozen=True)
class GatewayConfig:
    """Gateway configuration.

    Origins are compared exactly against the request ``Origin`` header, so
    they must not carry a trailing slash.
    """

    allowed_origins: Tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    upstream_url: str = DEFAULT_UPSTREAM_URL
    public_url: str = DEFAULT_PUBLIC_URL
    connect_timeout: float = 30
    read_timeout: float = 600
    chunk_size: int = 8192
    log_level: str = "INFO"
    log_format: str = "json"

    def __post_init__(self):
        """Validate and normalise configuration."""
        origins = self.allowed_origins
        if isinstance(origins, str):
            origins = tuple(o.strip() for o in origins.split(",") if o.strip())
        origins = tuple(origins)
        if not origins:
            raise ConfigError("allowed_origins must contain at least one origin")
        for origin in origins:
            if not isinstance(origin, str) or not origin:
                raise ConfigError(f"Invalid origin {origin!r}")
            if origin.endswith("/"):
                raise ConfigError(f"Origin must not end with '/': {origin!r}")
        object.__setattr__(self, "allowed_origins", origins)

        _check_base_url("upstream_url", self.upstream_url)
        _check_base_url("public_url", self.public_url)
        object.__setattr__(self, "upstream_url", self.upstream_url.rstrip("/"))
        object.__setattr__(self, "public_url", self.public_url.rstrip("/"))

        if self.connect_timeout <= 0:
            raise ConfigError(f"connect_timeout must be positive, got {self.connect_timeout}")
        if self.read_timeout <= 0:
            raise ConfigError(f"read_timeout must be positive, got {self.read_timeout}")
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")

        log_level = str(self.log_level).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        object.__setattr__(self, "log_level", log_level)

        log_format = str(self.log_format).lower()
        if log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format!r}")
        object.__setattr__(self, "log_format", log_format)

    def is_allowed_origin(self, origin: Optional[str]) -> bool:
        """Exact-match check of an ``Origin`` header value."""
        return origin is not None and origin in self.allowed_origins


def _load_yaml_file(file_path: str) -> Dict[str, Any]:
    """Load and parse a YAML file.

    Raises:
        ConfigError: If file not found or YAML parsing fails.
    """
    path = Path(file_path)

    if not path.exists():
        raise ConfigError(
            f"Configuration file not found: {file_path}\n"
            f"Hint: unset {CONFIG_PATH_ENV} to run with built-in defaults"
        )

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML file {file_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file {file_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid configuration file {file_path}: expected YAML dictionary, got {type(data).__name__}"
        )

    return data


def _coerce(name: str, value: Any) -> Any:
    if name == "allowed_origins":
        if isinstance(value, str):
            return value
        if not isinstance(value, (list, tuple)):
            raise ConfigError("allowed_origins must be a list of origins")
        return tuple(str(v) for v in value)
    try:
        if name == "chunk_size":
            return int(value)
        if name in ("connect_timeout", "read_timeout"):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {e}")
    return str(value)


def load_config(path: Optional[str] = None) -> GatewayConfig:
    """Load gateway configuration.

    Args:
        path: Optional YAML file. If not provided, ``GATEWAY_CONFIG_PATH`` is
              consulted; with neither, only defaults and env vars apply.

    Returns:
        Validated GatewayConfig instance.

    Raises:
        ConfigError: If the file or any value is invalid.
    """
    path = path or os.environ.get(CONFIG_PATH_ENV)
    known = {f.name for f in fields(GatewayConfig)}
    values: Dict[str, Any] = {}

    if path:
        data = _load_yaml_file(path)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown keys in {path}: {', '.join(unknown)}")
        for name, value in data.items():
            values[name] = _coerce(name, value)

    for name, env_var in ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw:
            values[name] = _coerce(name, raw)

    return GatewayConfig(**values)
