"""Application bootstrap helpers for the Inkwell desktop editor."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, cast, get_args, get_origin, get_type_hints

from .services.settings import CopyeditSettings, Settings, SettingsStore
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)
_COPYEDIT_PREFIX = "copyedit."
_TOGGLE_SHORTCUT = "Ctrl+Shift+E"


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


@dataclass(slots=True)
class EditorSession:
    """Widgets and copyedit handle owned by one editor window."""

    window: Any
    editor: Any
    handle: Any
    overlay: Any
    toggle_action: Any

    def close(self) -> None:
        self.overlay.detach()
        self.handle.close()


def configure_logging(debug: bool = False, *, force: bool = False, trace_passes: bool | None = None) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    log_path = logging_utils.setup_logging(level, force=force, trace_passes=trace_passes)
    _LOGGER.debug("Logging configured (level=%s, file=%s)", logging.getLevelName(level), log_path)
    _install_qt_message_handler()


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def create_qapp(settings: Settings) -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("Inkwell")
    app.setApplicationDisplayName("Inkwell")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)

    if (settings.theme or "").lower() == "dark":
        app.setStyle("Fusion")

    return QtRuntime(app=app, loop=loop)


def build_window(settings: Settings, *, loop: asyncio.AbstractEventLoop, path: Path | None = None) -> EditorSession:
    """Create the demo editor window with copyedit mode attached to its text area."""

    from PySide6.QtGui import QAction, QFont, QKeySequence
    from PySide6.QtWidgets import QMainWindow, QPlainTextEdit

    from .annotations import attach_copyedit_mode
    from .annotations.styles import default_styles
    from .editor.annotation_overlay import AnnotationOverlay
    from .editor.document_model import DocumentState

    window = QMainWindow()
    window.setWindowTitle(f"Inkwell - {path.name}" if path else "Inkwell")
    editor = QPlainTextEdit(window)
    editor.setFont(QFont(settings.font_family, settings.font_size))
    if path is not None:
        editor.setPlainText(_read_document(path))
    window.setCentralWidget(editor)

    document = DocumentState(text=editor.toPlainText())
    handle = attach_copyedit_mode(lambda: document.text, settings=settings, loop=loop)
    overlay = AnnotationOverlay(editor, handle, document=document, styles=default_styles(settings.theme))

    action = QAction("Copyedit Mode", window)
    action.setCheckable(True)
    action.setChecked(handle.enabled)
    action.setShortcut(QKeySequence(_TOGGLE_SHORTCUT))
    action.toggled.connect(handle.set_enabled)
    window.menuBar().addMenu("&View").addAction(action)
    window.resize(960, 720)

    return EditorSession(window=window, editor=editor, handle=handle, overlay=overlay, toggle_action=action)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the ``inkwell`` console script."""

    args, passthrough = _parse_cli_args(argv)
    _rewrite_sys_argv(passthrough)

    debug = _env_flag("INKWELL_DEBUG", default=False)
    trace_passes = True if args.trace_copyedit else None
    configure_logging(debug, trace_passes=trace_passes)

    settings_path = args.settings_path or os.environ.get("INKWELL_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    if args.copyedit:
        cli_overrides["copyedit_mode_enabled"] = True

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        configure_logging(True, force=True, trace_passes=trace_passes)

    document_path = Path(args.file).expanduser() if args.file else None
    runtime = create_qapp(settings)
    session = build_window(settings, loop=runtime.loop, path=document_path)
    session.window.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        session.close()
        _drain_event_loop(loop)
        loop.close()


def _read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        _LOGGER.info("%s does not exist yet; starting with an empty document", path)
        return ""


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shutdown async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = None
        with contextlib.suppress(RuntimeError):
            current_task = asyncio.current_task(loop=loop)

        tasks = [task for task in asyncio.all_tasks(loop) if not task.done() and task is not current_task]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - loop already stopping
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _install_qt_message_handler() -> None:
    """Redirect Qt warnings to the Python logging stack."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        logging.getLogger("PySide6").log(level_map.get(mode, logging.INFO), message)

    qInstallMessageHandler(_handler)


def _parse_cli_args(argv: Sequence[str] | None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(
        prog="inkwell",
        add_help=True,
        description="Launch the Inkwell markdown editor or inspect its configuration.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.inkwell/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable). "
        "Use copyedit.<field> for copyedit options.",
    )
    parser.add_argument(
        "--copyedit",
        action="store_true",
        help="Start with copyedit mode enabled.",
    )
    parser.add_argument(
        "--trace-copyedit",
        action="store_true",
        help="Log every copyedit analysis pass at debug level.",
    )
    parser.add_argument("file", nargs="?", metavar="FILE", help="Markdown document to open.")
    return parser.parse_known_args(argv)


def _rewrite_sys_argv(passthrough: Sequence[str]) -> None:
    program = sys.argv[0] if sys.argv else "inkwell"
    sys.argv = [program, *passthrough]


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    copyedit: Dict[str, Any] = {}
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key.startswith(_COPYEDIT_PREFIX):
            field_name = key[len(_COPYEDIT_PREFIX) :]
            copyedit[field_name] = _coerce_field(CopyeditSettings, field_name, raw_value)
        else:
            overrides[key] = _coerce_field(Settings, key, raw_value)
    if copyedit:
        base = overrides.get("copyedit")
        merged = asdict(base) if isinstance(base, CopyeditSettings) else {}
        merged.update(copyedit)
        overrides["copyedit"] = merged
    return overrides


def _coerce_field(target: type, key: str, raw_value: str) -> Any:
    fields = target.__dataclass_fields__  # type: ignore[attr-defined]
    if key not in fields:
        raise ValueError(f"Unknown setting '{key}'.")
    annotation = get_type_hints(target).get(key, fields[key].type)
    return _coerce_value(annotation, raw_value.strip())


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is type(None) or normalized.lower() in {"none", "null"}:
        return None
    if is_dataclass(target):
        try:
            payload = json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dataclass overrides must be valid JSON") from exc
        if isinstance(target, type):
            return target(**payload)
        raise ValueError("Dataclass override target is not instantiable")
    if target is list:
        if normalized.startswith("["):
            try:
                return json.loads(normalized)
            except json.JSONDecodeError as exc:
                raise ValueError("List overrides must be valid JSON arrays") from exc
        return [item.strip() for item in normalized.split(",") if item.strip()]
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return _resolve_annotation(args[0])


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
        "copyedit_categories": sorted(category.value for category in settings.copyedit.enabled_categories()),
    }
    json.dump({"settings": asdict(settings), "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("INKWELL_"))
