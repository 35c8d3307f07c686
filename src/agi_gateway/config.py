"""Server configuration.

Sources, lowest precedence first:
- defaults below
- YAML file (``ServerConfig.from_file``)
- environment variables (``AGI_HOST``, ``AGI_PORT``, ...)
- explicit overrides (CLI flags)

Example file:

    host: 0.0.0.0
    port: 4573
    silent: false
    log_level: DEBUG
"""

from __future__ import annotations

import codecs
import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "AGI_"

# Standard FastAGI port
DEFAULT_PORT = 4573

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for AgiServer."""

    # Listener
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT

    # Suppress the default report of unhandled handler errors
    silent: bool = False

    log_level: str = "INFO"

    # Stream settings
    read_chunk_size: int = 4096
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"Invalid port: {self.port}")
        if self.read_chunk_size <= 0:
            raise ConfigError(f"read_chunk_size must be positive, got {self.read_chunk_size}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ConfigError(f"Unknown encoding: {self.encoding}") from e
        object.__setattr__(self, "log_level", self.log_level.upper())

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> ServerConfig:
        """Build a config from a mapping, converting string values.

        Raises:
            ConfigError: Unknown key or value of the wrong type
        """
        return cls().merge(values)

    @classmethod
    def from_file(cls, path: str | Path) -> ServerConfig:
        """Load a YAML config file."""
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigError(f"Config file {path} must contain a mapping")

        logger.debug(f"Loaded config from {path}")
        return cls.from_mapping(data)

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> ServerConfig:
        """Resolve the configuration from all sources.

        Args:
            path: Optional YAML file
            environ: Environment to read (default: os.environ)
            overrides: Explicit values; None entries are ignored
        """
        config = cls.from_file(path) if path else cls()
        config = config.merge(env_values(os.environ if environ is None else environ))
        return config.merge({k: v for k, v in overrides.items() if v is not None})

    def merge(self, values: Mapping[str, Any]) -> ServerConfig:
        """Return a copy with ``values`` applied on top."""
        known = {f.name: f for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in values.items():
            if key not in known:
                raise ConfigError(f"Unknown config key: {key}")
            changes[key] = _coerce(key, known[key].type, value)
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def env_values(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect ``AGI_*`` variables that name a config field."""
    names = {f.name for f in fields(ServerConfig)}
    values = {}
    for name in names:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in environ:
            values[name] = environ[key]
    return values


def _coerce(key: str, type_name: Any, value: Any) -> Any:
    # Field types are strings under postponed annotations
    type_name = getattr(type_name, "__name__", type_name)

    if type_name == "bool":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigError(f"Invalid boolean for {key}: {value!r}")

    if type_name == "int":
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer for {key}: {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid integer for {key}: {value!r}") from e

    if not isinstance(value, str):
        raise ConfigError(f"Invalid string for {key}: {value!r}")
    return value
