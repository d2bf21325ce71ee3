"""Environment lookup helpers shared by the configuration dataclasses."""

from __future__ import annotations

import os
from typing import Mapping

from .results import ConfigurationError


def _source(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def env_or_default(name: str, default: str, environ: Mapping[str, str] | None = None) -> str:
    value = _source(environ).get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_optional(name: str, environ: Mapping[str, str] | None = None) -> str | None:
    value = _source(environ).get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def require_env(name: str, environ: Mapping[str, str] | None = None) -> str:
    value = env_optional(name, environ)
    if value is None:
        raise ConfigurationError(f"{name} environment variable is required")
    return value


def env_bool(name: str, default: bool, environ: Mapping[str, str] | None = None) -> bool:
    value = _source(environ).get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int, environ: Mapping[str, str] | None = None) -> int:
    value = env_optional(name, environ)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc
