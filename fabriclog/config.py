"""Settings for the logger, the database and the HTTP server, read from the environment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta
from fractions import Fraction
from typing import Dict, Mapping, Optional

_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_PIECE = r"(?:\d+\.?\d*|\.\d+)(?:ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(rf"([-+]?)((?:{_PIECE})+)")
_PIECE_RE = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

# Environment key, dataclass field, default; in the order they are checked.
_DATABASE_KEYS = (
    ("HOST", "host", None),
    ("PORT", "port", "5432"),
    ("USER", "user", None),
    ("PASSWORD", "password", None),
    ("DB", "database", None),
    ("TIMEOUT", "timeout", None),
)


class ConfigError(Exception):
    """Raised when required settings are missing or malformed."""


@dataclass(frozen=True)
class LoggerConfig:
    """Where and how verbosely the application logs."""

    folder: str
    level: str = "DEBUG"


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the database."""

    host: str
    user: str
    password: str
    database: str
    timeout: timedelta
    port: str = "5432"


@dataclass(frozen=True)
class ServerConfig:
    """Listen address and shutdown grace period of the HTTP server."""

    addr: str
    shutdown_timeout: timedelta = timedelta(seconds=30)


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "30s", "1h15m" or "250ms"."""
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    match = _DURATION_RE.fullmatch(text)
    if match is None:
        raise ConfigError(f"invalid duration {text!r}")
    nanos = sum(
        Fraction(number) * _UNIT_NANOS[unit]
        for number, unit in _PIECE_RE.findall(match.group(2))
    )
    if match.group(1) == "-":
        nanos = -nanos
    return timedelta(microseconds=round(nanos / 1000))


def _lookup(
    env: Mapping[str, str],
    prefix: str,
    key: str,
    *,
    default: Optional[str] = None,
    required: bool = False,
) -> Optional[str]:
    full_key = f"{prefix}_{key}"
    if full_key in env:
        return env[full_key]
    if key in env:
        return env[key]
    if default is not None:
        return default
    if required:
        raise ConfigError(f"process envconfig: required key {full_key} missing value")
    return None


def _duration(value: str, key: str) -> timedelta:
    try:
        return parse_duration(value)
    except ConfigError as exc:
        raise ConfigError(f"process envconfig: converting {value!r} for {key}: {exc}") from exc


def _environ(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def load_logger_config(environ: Optional[Mapping[str, str]] = None) -> LoggerConfig:
    """Read LOGGER_LEVEL (default DEBUG) and the required LOGGER_FOLDER."""
    env = _environ(environ)
    return LoggerConfig(
        folder=_lookup(env, "LOGGER", "FOLDER", required=True),
        level=_lookup(env, "LOGGER", "LEVEL", default="DEBUG"),
    )


def load_database_config(environ: Optional[Mapping[str, str]] = None) -> DatabaseConfig:
    """Read the POSTGRES_* settings; only the port has a default."""
    env = _environ(environ)
    values: Dict[str, object] = {}
    for key, field_name, default in _DATABASE_KEYS:
        values[field_name] = _lookup(
            env, "POSTGRES", key, default=default, required=default is None
        )
    values["timeout"] = _duration(values["timeout"], "POSTGRES_TIMEOUT")
    return DatabaseConfig(**values)


def load_server_config(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """Read the required HTTP_ADDR and HTTP_SHUTDOWN_TIMEOUT (default 30s)."""
    env = _environ(environ)
    addr = _lookup(env, "HTTP", "ADDR", required=True)
    shutdown = _lookup(env, "HTTP", "SHUTDOWN_TIMEOUT", default="30s")
    return ServerConfig(
        addr=addr,
        shutdown_timeout=_duration(shutdown, "HTTP_SHUTDOWN_TIMEOUT"),
    )