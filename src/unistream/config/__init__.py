"""Configuration module for UniStream."""

from .runtime import RuntimeConfig
from .settings import (
    BackendSettings,
    BilibiliSettings,
    MirrorSettings,
    NeteaseSettings,
    ObservabilitySettings,
    SearchSettings,
    Settings,
    get_settings,
)

__all__ = [
    "BackendSettings",
    "BilibiliSettings",
    "MirrorSettings",
    "NeteaseSettings",
    "ObservabilitySettings",
    "RuntimeConfig",
    "SearchSettings",
    "Settings",
    "get_settings",
]
