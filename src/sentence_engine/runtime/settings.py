"""Environment-driven settings shared by the state holder and its history."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .telemetry import DEFAULT_LOGGER_NAME, ENV_PREFIX


def _env_int(environ: Mapping[str, str], key: str, fallback: int) -> int:
    value = environ.get(f"{ENV_PREFIX}{key}")
    if value is None:
        return fallback
    try:
        return int(value)
    except ValueError:
        return fallback


def _env_bool(environ: Mapping[str, str], key: str, fallback: bool) -> bool:
    value = environ.get(f"{ENV_PREFIX}{key}")
    if value is None:
        return fallback
    return value.lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Defaults applied when callers do not pass explicit keyword arguments."""

    verbose: bool = False
    history_limit: Optional[int] = None  # None keeps every snapshot
    logger_name: str = DEFAULT_LOGGER_NAME


def load_settings(environ: Optional[Mapping[str, str]] = None) -> EngineSettings:
    env = os.environ if environ is None else environ
    limit = _env_int(env, "HISTORY_LIMIT", 0)
    return EngineSettings(
        verbose=_env_bool(env, "VERBOSE", False),
        history_limit=limit if limit > 0 else None,
        logger_name=env.get(f"{ENV_PREFIX}LOGGER", DEFAULT_LOGGER_NAME),
    )


__all__ = ["EngineSettings", "load_settings"]
