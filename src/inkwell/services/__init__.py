"""Service layer helpers (settings persistence, etc.)."""

from .settings import CopyeditSettings, Settings, SettingsStore

__all__ = [
    "CopyeditSettings",
    "Settings",
    "SettingsStore",
]
