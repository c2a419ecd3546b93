"""Logging, telemetry and configuration services."""

from . import telemetry
from .settings import EngineSettings, load_settings

__all__ = ["EngineSettings", "load_settings", "telemetry"]
