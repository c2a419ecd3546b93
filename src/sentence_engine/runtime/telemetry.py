"""telelog wiring for the sentence engine.

``configure`` builds the telelog config from ``SENTENCE_ENGINE_*`` variables,
``get_logger`` hands out cached loggers, ``record_event`` logs
``event::sentence.*`` / ``event::history.*`` lines and ``span`` profiles one
edit, logging ``span::fail`` when the edit raises.
"""

from __future__ import annotations

import os
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional, Tuple, cast

import telelog  # type: ignore[import]

tl = cast(Any, telelog)

ENV_PREFIX = "SENTENCE_ENGINE_"
DEFAULT_LOGGER_NAME = os.getenv(f"{ENV_PREFIX}LOGGER", "sentence_engine")

_LOGGER_CACHE: MutableMapping[str, Any] = {}
_ACTIVE_CONFIG: Optional[Any] = None


def _flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(f"{ENV_PREFIX}{name}", "").lower() in {"1", "true", "yes", "on"}


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return repr(value) if isinstance(value, (dict, list, tuple, set)) else str(value)


def _format_pairs(data: Dict[str, Any]) -> list[tuple[str, str]]:
    return [(str(key), _stringify(value)) for key, value in data.items()]


def build_config(
    environ: Optional[Mapping[str, str]] = None, *, min_level: Optional[str] = None
) -> Any:
    """Translate ``SENTENCE_ENGINE_LOG_*`` variables into a ``tl.Config``.

    ``min_level`` wins over ``SENTENCE_ENGINE_LOG_LEVEL``. The demo app
    passes ``"WARNING"`` so span timings stay out of the terminal.
    """

    env = os.environ if environ is None else environ
    config = tl.Config()
    level = min_level or env.get(f"{ENV_PREFIX}LOG_LEVEL") or "INFO"
    config.with_min_level(level.upper())

    console = not _flag(env, "DISABLE_CONSOLE")
    config.with_console_output(console)
    if console:
        config.with_colored_output(not _flag(env, "NO_COLOR"))
    if _flag(env, "LOG_JSON"):
        config.with_json_format(True)

    log_file = env.get(f"{ENV_PREFIX}LOG_FILE")
    if log_file:
        config.with_file_output(log_file)

    config.with_profiling(True)
    return config


def configure(*, config: Optional[Any] = None, min_level: Optional[str] = None) -> None:
    """Adopt ``config`` (or one built from the environment) for every new logger."""

    global _ACTIVE_CONFIG
    if config is not None and min_level is not None:
        raise ValueError("Provide either `config` or `min_level`, not both.")

    _ACTIVE_CONFIG = config if config is not None else build_config(min_level=min_level)
    _LOGGER_CACHE.clear()


def get_logger(name: Optional[str] = None) -> Any:
    """Return a cached ``telelog.Logger`` for ``name`` (the engine logger by default)."""

    global _ACTIVE_CONFIG
    if _ACTIVE_CONFIG is None:
        configure()
    logger_name = name or DEFAULT_LOGGER_NAME
    if logger_name not in _LOGGER_CACHE:
        _LOGGER_CACHE[logger_name] = tl.Logger.with_config(logger_name, _ACTIVE_CONFIG)
    return _LOGGER_CACHE[logger_name]


def _level_method(logger: Any, level: str) -> Tuple[Any, bool]:
    name = level.lower()
    with_data = getattr(logger, f"{name}_with", None)
    if with_data is not None:
        return with_data, True
    method = getattr(logger, name, None)
    if method is None:
        raise ValueError(f"Unsupported log level '{level}'.")
    return method, False


def _emit(logger: Any, level: str, message: str, payload: Dict[str, Any]) -> None:
    method, accepts_data = _level_method(logger, level)
    if accepts_data:
        method(message, _format_pairs(payload))
    else:
        method(f"{message} {payload}")


def record_event(
    name: str,
    *,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    """Log ``event::<name>`` with ``data`` as key/value pairs."""

    _emit(get_logger(logger_name), level, f"event::{name}", {"event": name, **(data or {})})


@dataclass
class SpanHandle:
    """Yielded by ``span``; metadata added here is attached to a ``span::fail`` line."""

    logger: Any
    span_name: str
    component_name: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = _stringify(value)

    def fail(self, exc: BaseException) -> None:
        payload: Dict[str, Any] = {"span": self.span_name, **self.metadata}
        if self.component_name:
            payload["component"] = self.component_name
        payload["error"] = type(exc).__name__
        payload["reason"] = str(exc)
        _emit(self.logger, "error", "span::fail", payload)


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    component: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Iterator[SpanHandle]:
    """Profile one edit under ``name``; a raising edit is logged and re-raised as is."""

    log = get_logger(logger_name)
    context = {key: _stringify(value) for key, value in (metadata or {}).items()}
    for key, value in context.items():
        log.add_context(key, value)

    with ExitStack() as stack:
        if component:
            stack.enter_context(log.track_component(component))
        stack.enter_context(log.profile(name))
        handle = SpanHandle(
            logger=log, span_name=name, component_name=component, metadata=dict(context)
        )
        try:
            yield handle
        except Exception as exc:
            handle.fail(exc)
            raise
        finally:
            for key in context:
                log.remove_context(key)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "ENV_PREFIX",
    "SpanHandle",
    "build_config",
    "configure",
    "get_logger",
    "record_event",
    "span",
]
