"""Tests for the logging bootstrap helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from inkwell.utils import logging as logging_utils


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch: pytest.MonkeyPatch):
    for name in ("INKWELL_LOG_DIR", "INKWELL_LOG_LEVEL", "INKWELL_COPYEDIT_TRACE"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _read_log(path: Path) -> str:
    for handler in logging.getLogger().handlers:
        handler.flush()
    return path.read_text(encoding="utf-8")


def test_setup_logging_writes_rotating_file(tmp_path: Path) -> None:
    path = logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=False, force=True)

    logging.getLogger("inkwell.test").info("hello copyedit")

    assert path == tmp_path / "inkwell.log"
    assert "hello copyedit" in _read_log(path)
    assert logging.getLogger("spacy").level == logging.WARNING
    assert logging.getLogger("qasync").level == logging.WARNING


def test_setup_logging_is_idempotent_without_force(tmp_path: Path) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False, force=True)

    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)

    assert second == first


def test_log_dir_environment_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKWELL_LOG_DIR", str(tmp_path / "env-logs"))

    path = logging_utils.setup_logging(console=False, force=True)

    assert path == tmp_path / "env-logs" / "inkwell.log"
    assert path.exists()


def test_pass_tracing_admits_only_copyedit_debug_records(tmp_path: Path) -> None:
    path = logging_utils.setup_logging(logging.INFO, log_dir=tmp_path, console=False, trace_passes=True, force=True)

    logging.getLogger("inkwell.annotations.engine").debug("pass finished in 3ms")
    logging.getLogger("inkwell.app").debug("window resized")

    contents = _read_log(path)
    assert "pass finished in 3ms" in contents
    assert "window resized" not in contents


def test_trace_environment_flag(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKWELL_COPYEDIT_TRACE", "yes")
    path = logging_utils.setup_logging(log_dir=tmp_path, console=False, force=True)

    logging.getLogger("inkwell.annotations.scheduler").debug("armed generation 4")

    assert "armed generation 4" in _read_log(path)


def test_log_level_environment_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKWELL_LOG_LEVEL", "warning")
    path = logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=False, force=True)

    logging.getLogger("inkwell.test").info("quiet info")
    logging.getLogger("inkwell.test").warning("loud warning")

    contents = _read_log(path)
    assert "quiet info" not in contents
    assert "loud warning" in contents


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, logging.INFO), ("debug", logging.DEBUG), ("30", logging.WARNING), (logging.ERROR, logging.ERROR)],
)
def test_resolve_level_accepts_names_and_numbers(value, expected) -> None:
    assert logging_utils.resolve_level(value) == expected


def test_resolve_level_warns_on_unknown_name(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="inkwell.utils.logging")

    assert logging_utils.resolve_level("chatty", default=logging.WARNING) == logging.WARNING
    assert "Unknown log level" in caplog.text
