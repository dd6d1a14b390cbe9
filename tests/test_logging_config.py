from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Mapping

import pytest

from diskfoundry.errors import ReadFailure
from diskfoundry.logging_config import (
    BACKEND_LOGGERS,
    HumanReadableFormatter,
    JSONFormatter,
    failure_context,
    get_log_format_from_env,
    get_log_level_from_env,
    setup_logging,
)


def _record(message: str, **extra: Any) -> logging.LogRecord:
    record = logging.LogRecord("diskfoundry.test", logging.WARNING, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_writes_json_file(tmp_path: Path, restore_root_logger: logging.Logger) -> None:
    """Ensure logging setup adds JSON console output and a rotating file handler."""
    log_path = tmp_path / "logs" / "app.log"

    setup_logging(level=logging.DEBUG, format_type="json", log_file=log_path, include_context=True)

    handlers = list(restore_root_logger.handlers)
    console_handler = next(
        handler for handler in handlers if type(handler) is logging.StreamHandler
    )
    file_handler = next(
        handler for handler in handlers if isinstance(handler, logging.handlers.RotatingFileHandler)
    )
    assert isinstance(console_handler.formatter, JSONFormatter)
    assert isinstance(file_handler.formatter, JSONFormatter)

    logging.getLogger("diskfoundry.test").info("hello disk", extra={"disk": "media"})
    file_handler.flush()

    records = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines() if line.strip()]
    record = next(r for r in records if r.get("message") == "hello disk")
    assert record["disk"] == "media"
    assert record["level"] == "INFO"


def test_setup_logging_reads_log_file_from_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, restore_root_logger: logging.Logger
) -> None:
    log_path = tmp_path / "env.log"
    monkeypatch.setenv("DISKFOUNDRY_LOG_FILE", str(log_path))

    setup_logging(level=logging.INFO, format_type="simple")

    assert any(
        isinstance(handler, logging.handlers.RotatingFileHandler) for handler in restore_root_logger.handlers
    )
    assert log_path.exists()


def test_json_formatter_includes_extras_and_exceptions() -> None:
    formatter = JSONFormatter(include_context=False)
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record("failed", error_code="ERR101", path=Path("a.txt"))
        record.exc_info = sys.exc_info()

    data = json.loads(formatter.format(record))

    assert data["message"] == "failed"
    assert data["error_code"] == "ERR101"
    assert data["path"] == "a.txt"
    assert "ValueError: boom" in data["exception"]
    assert "source" not in data
    assert data["timestamp"].endswith("Z")


def test_human_formatter_without_colors() -> None:
    formatter = HumanReadableFormatter(use_colors=False)
    assert formatter.format(_record("plain")).startswith("[WARNING]")


@pytest.mark.parametrize(
    "env, expected",
    [
        ({"DISKFOUNDRY_LOG_LEVEL": "debug"}, logging.DEBUG),
        ({"LOG_LEVEL": "WARN"}, logging.WARNING),
        ({"DISKFOUNDRY_LOG_LEVEL": "ERROR", "LOG_LEVEL": "DEBUG"}, logging.ERROR),
        ({"LOG_LEVEL": "chatty"}, logging.INFO),
        ({"DISKFOUNDRY_LOG_LEVEL": "15"}, 15),
        ({}, logging.INFO),
    ],
)
def test_log_level_from_env(monkeypatch: pytest.MonkeyPatch, env: Mapping[str, str], expected: int) -> None:
    monkeypatch.delenv("DISKFOUNDRY_LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    assert get_log_level_from_env() == expected


def test_log_format_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DISKFOUNDRY_LOG_FORMAT", raising=False)
    assert get_log_format_from_env() == "human"
    monkeypatch.setenv("DISKFOUNDRY_LOG_FORMAT", "JSON")
    assert get_log_format_from_env() == "json"


def _read_failure() -> ReadFailure:
    error = ReadFailure.at("reports/q1.pdf", cause=FileNotFoundError("gone"))
    error.details["disk"] = "media"
    return error


def test_failure_context_carries_disk_and_error() -> None:
    context = failure_context(_read_failure())

    assert context["disk"] == "media"
    assert context["error"]["error_code"] == "STG001"
    assert context["error"]["details"]["path"] == "reports/q1.pdf"


def test_json_formatter_renders_failure_context() -> None:
    record = _record("get failed", **failure_context(_read_failure()))

    data = json.loads(JSONFormatter(include_context=True).format(record))

    assert data["disk"] == "media"
    assert data["error"]["error_type"] == "ReadFailure"
    assert data["error"]["details"]["operation"] == "read file"
    assert data["source"].endswith(":10")
    assert "exception" not in data


def test_json_formatter_reads_filesystem_error_from_exc_info() -> None:
    try:
        raise _read_failure()
    except ReadFailure:
        record = _record("unexpected")
        record.exc_info = sys.exc_info()

    data = json.loads(JSONFormatter(include_context=False).format(record))

    assert data["disk"] == "media"
    assert data["error"]["error_code"] == "STG001"
    assert "ReadFailure" in data["exception"]


def test_human_formatter_tags_disk_and_error_code() -> None:
    formatter = HumanReadableFormatter(use_colors=False)

    line = formatter.format(_record("get failed", **failure_context(_read_failure())))

    assert line.endswith("get failed [media STG001]")
    assert formatter.format(_record("listing", disk="uploads")).endswith("listing [uploads]")


@pytest.fixture
def restore_backend_loggers():
    levels = {name: logging.getLogger(name).level for name in BACKEND_LOGGERS}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def test_setup_logging_quiets_backend_loggers(
    restore_root_logger: logging.Logger, restore_backend_loggers: None
) -> None:
    setup_logging(level=logging.INFO, format_type="simple")
    assert logging.getLogger("botocore").level == logging.WARNING

    setup_logging(level=logging.DEBUG, format_type="simple")
    assert logging.getLogger("botocore").level == logging.DEBUG
