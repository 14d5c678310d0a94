"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..annotations.models import DEFAULT_CATEGORIES, Category, normalize_categories

__all__ = [
    "CopyeditSettings",
    "DEFAULT_PARTS_OF_SPEECH",
    "Settings",
    "SettingsStore",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".inkwell"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "INKWELL_THEME": "theme",
    "INKWELL_FONT_FAMILY": "font_family",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "INKWELL_DEBUG_LOGGING": "debug_logging",
    "INKWELL_COPYEDIT_MODE": "copyedit_mode_enabled",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "INKWELL_FONT_SIZE": "font_size",
}
_COPYEDIT_ENV_OVERRIDES: Mapping[str, str] = {
    "INKWELL_SPACY_MODEL": "spacy_model",
}
_COPYEDIT_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "INKWELL_COPYEDIT_DEBOUNCE_MS": "debounce_ms",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}

DEFAULT_PARTS_OF_SPEECH: tuple[str, ...] = tuple(
    category.setting_name for category in Category.grammatical()
)


@dataclass(slots=True)
class CopyeditSettings:
    """Copyedit mode preferences surfaced in the General pane."""

    enabled_parts_of_speech: list[str] = field(default_factory=lambda: list(DEFAULT_PARTS_OF_SPEECH))
    debounce_ms: int = 300
    detect_urls: bool = True
    spacy_model: str = "en_core_web_sm"

    def enabled_categories(self) -> frozenset[Category]:
        """Resolve the configured names; ``None`` falls back to every grammatical category."""

        if self.enabled_parts_of_speech is None:
            return DEFAULT_CATEGORIES
        return normalize_categories(self.enabled_parts_of_speech)

    def with_part_of_speech(self, name: str, enabled: bool) -> CopyeditSettings:
        """Return a copy with ``name`` toggled, keeping the remaining order stable."""

        setting_name = Category.from_setting(name).setting_name
        current = [item for item in (self.enabled_parts_of_speech or []) if item != setting_name]
        if enabled:
            current.append(setting_name)
        return replace(self, enabled_parts_of_speech=current)


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    theme: str = "dark"
    font_family: str = "JetBrains Mono"
    font_size: int = 13
    debug_logging: bool = False
    copyedit_mode_enabled: bool = False
    copyedit: CopyeditSettings = field(default_factory=CopyeditSettings)


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload, Settings)
            copyedit_payload = data.get("copyedit")
            if isinstance(copyedit_payload, Mapping):
                data["copyedit"] = _coerce_copyedit(copyedit_payload)
            elif "copyedit" in data:
                LOGGER.warning("Ignoring malformed copyedit settings of type %s", type(copyedit_payload))
                data.pop("copyedit")
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            LOGGER.debug("Settings loaded from %s", self._path)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain a JSON object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        copyedit_override = filtered.get("copyedit")
        if isinstance(copyedit_override, Mapping):
            merged = asdict(settings.copyedit)
            merged.update(copyedit_override)
            filtered["copyedit"] = _coerce_copyedit(merged)
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            parsed = _int_from_env(env_name)
            if parsed is not None:
                overrides[field_name] = parsed

        copyedit: Dict[str, Any] = {}
        for env_name, field_name in _COPYEDIT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                copyedit[field_name] = value
        for env_name, field_name in _COPYEDIT_INT_ENV_OVERRIDES.items():
            parsed = _int_from_env(env_name)
            if parsed is not None:
                copyedit[field_name] = parsed
        if copyedit:
            overrides["copyedit"] = copyedit

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _int_from_env(env_name: str) -> int | None:
    value = os.environ.get(env_name)
    if value is None:
        return None
    try:
        return int(value, 10)
    except ValueError:
        LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        return None


def _filter_fields(payload: Mapping[str, Any], target: type) -> Dict[str, Any]:
    allowed = {field.name for field in fields(target)}
    return {key: value for key, value in payload.items() if key in allowed}


def _coerce_copyedit(payload: Mapping[str, Any]) -> CopyeditSettings:
    data = _filter_fields(payload, CopyeditSettings)
    parts = data.get("enabled_parts_of_speech")
    if parts is not None and not isinstance(parts, (list, tuple)):
        LOGGER.warning("enabled_parts_of_speech must be a list; using defaults")
        data.pop("enabled_parts_of_speech")
    elif parts is not None:
        data["enabled_parts_of_speech"] = [str(item) for item in parts]
    debounce = data.get("debounce_ms")
    if debounce is not None:
        try:
            data["debounce_ms"] = max(0, int(debounce))
        except (TypeError, ValueError):
            LOGGER.warning("debounce_ms must be an integer; using default")
            data.pop("debounce_ms")
    try:
        return CopyeditSettings(**data)
    except TypeError as exc:  # pragma: no cover - filtered above
        LOGGER.warning("Copyedit settings contained unexpected data: %s", exc)
        return CopyeditSettings()
