"""Logging bootstrap for the Inkwell editor and its copyedit engine.

Records go to a rotating ``inkwell.log`` and, optionally, to stderr. Copyedit
pass tracing lets the per-pass debug output of ``inkwell.annotations`` through
while the rest of the application stays at the configured level, which keeps
the log readable when diagnosing highlight timing on large documents.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["ANNOTATIONS_LOGGER", "resolve_level", "setup_logging"]

ANNOTATIONS_LOGGER = "inkwell.annotations"

_DEFAULT_LOG_DIR = Path.home() / ".inkwell" / "logs"
_LOG_FILE_NAME = "inkwell.log"
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync", "spacy")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_LOG_PATH: Path | None = None


class _PassTraceFilter(logging.Filter):
    """Admits records at ``level`` and above, plus copyedit records when tracing."""

    def __init__(self, level: int, *, trace_passes: bool) -> None:
        super().__init__()
        self.level = level
        self.trace_passes = trace_passes

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= self.level:
            return True
        if not self.trace_passes:
            return False
        return record.name == ANNOTATIONS_LOGGER or record.name.startswith(ANNOTATIONS_LOGGER + ".")


def resolve_level(value: int | str | None, default: int = logging.INFO) -> int:
    """Turn a level number or name such as ``"debug"`` into a logging level."""

    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    if isinstance(level, int):
        return level
    logging.getLogger(__name__).warning("Unknown log level %r; using %s", value, logging.getLevelName(default))
    return default


def setup_logging(
    level: int | str = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    trace_passes: bool | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the file and console handlers on the root logger and return the log path.

    ``INKWELL_LOG_LEVEL`` overrides ``level`` and ``INKWELL_COPYEDIT_TRACE``
    supplies ``trace_passes`` when it is not given. Repeated calls keep the
    existing handlers unless ``force`` is set.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    resolved = resolve_level(os.environ.get("INKWELL_LOG_LEVEL"), default=resolve_level(level))
    if trace_passes is None:
        trace_passes = os.environ.get("INKWELL_COPYEDIT_TRACE", "").strip().lower() in _TRUE_VALUES

    log_path = _resolve_log_dir(log_dir) / _LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handlers = _build_handlers(log_path, console=console, max_bytes=max_bytes, backup_count=backup_count)
    trace_filter = _PassTraceFilter(resolved, trace_passes=trace_passes)
    for handler in handlers:
        handler.addFilter(trace_filter)

    root_level = min(resolved, logging.DEBUG) if trace_passes else resolved
    logging.basicConfig(level=root_level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _quiet_external_loggers(resolved)

    _LOG_PATH = log_path
    return log_path


def _build_handlers(log_path: Path, *, console: bool, max_bytes: int, backup_count: int) -> list[logging.Handler]:
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handlers: list[logging.Handler] = [file_handler]
    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(stream_handler)
    return handlers


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("INKWELL_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()


def _quiet_external_loggers(level: int) -> None:
    # Tracing only widens the copyedit namespace; third-party loggers stay quiet.
    quiet_level = max(level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
