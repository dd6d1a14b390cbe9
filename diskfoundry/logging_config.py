"""Logging configuration for diskfoundry.

diskfoundry modules log through ``logging.getLogger(__name__)`` and never
install handlers on import. Applications (or the ``diskfoundry`` command)
call ``setup_logging`` to choose a level and a format.

Records about failed storage operations carry the disk name as ``disk`` and
the ``FilesystemError`` as an ``error`` mapping (see ``failure_context``).
Both formatters render those fields: the JSON formatter as keys, the human
formatter as a ``[disk CODE]`` suffix.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from diskfoundry.errors import FilesystemError

__all__ = [
    "BACKEND_LOGGERS",
    "JSONFormatter",
    "HumanReadableFormatter",
    "failure_context",
    "get_log_level_from_env",
    "get_log_format_from_env",
    "setup_logging",
]

# Third-party loggers that are chatty at INFO/DEBUG; kept at WARNING unless
# diskfoundry itself runs at DEBUG.
BACKEND_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3", "fsspec", "paramiko", "azure", "gcsfs")

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def failure_context(exc: FilesystemError) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a log call reporting ``exc``."""
    context: Dict[str, Any] = {"error": exc.to_dict()}
    disk = exc.details.get("disk")
    if disk:
        context["disk"] = disk
    return context


def _record_error(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    error = getattr(record, "error", None)
    if isinstance(error, dict):
        return error
    if record.exc_info and isinstance(record.exc_info[1], FilesystemError):
        return record.exc_info[1].to_dict()
    return None


def _record_disk(record: logging.LogRecord, error: Optional[Dict[str, Any]]) -> Optional[str]:
    disk = getattr(record, "disk", None)
    if disk is None and error:
        disk = error.get("details", {}).get("disk")
    return disk


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    ``disk`` and ``error`` are filled from the record's extras or, failing
    that, from a ``FilesystemError`` attached with ``exc_info``. Other extras
    are copied as top-level keys; values json cannot encode are stringified.
    """

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_context:
            payload["source"] = f"{record.module}.{record.funcName}:{record.lineno}"

        error = _record_error(record)
        disk = _record_disk(record, error)
        if disk is not None:
            payload["disk"] = disk
        if error is not None:
            payload["error"] = error

        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``[LEVEL] time - logger - message [disk CODE]`` with optional ANSI colors."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = False, include_context: bool = False):
        location = " %(module)s.%(funcName)s:%(lineno)d -" if include_context else ""
        super().__init__(
            fmt=f"[%(levelname)s] %(asctime)s - %(name)s -{location} %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        error = _record_error(record)
        tags = [tag for tag in (_record_disk(record, error), error and error.get("error_code")) if tag]
        if tags:
            # Keep the traceback (if any) below the tagged first line
            first, newline, rest = formatted.partition("\n")
            formatted = f"{first} [{' '.join(tags)}]{newline}{rest}"

        if self.use_colors and record.levelname in self.COLORS:
            return f"{self.COLORS[record.levelname]}{formatted}{self.RESET}"
        return formatted


def get_log_level_from_env() -> int:
    """Level from ``DISKFOUNDRY_LOG_LEVEL``, then ``LOG_LEVEL``; INFO if unset or unknown.

    Accepts level names (``debug``, ``WARN``) as well as numbers (``15``).
    """
    value = (os.environ.get("DISKFOUNDRY_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "INFO").strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def get_log_format_from_env() -> str:
    """Log format from DISKFOUNDRY_LOG_FORMAT: 'json', 'human' (default) or 'simple'."""
    return os.environ.get("DISKFOUNDRY_LOG_FORMAT", "human").lower()


def setup_logging(
    level: Optional[int] = None,
    format_type: Optional[str] = None,
    log_file: Optional[Path] = None,
    use_colors: bool = False,
    include_context: bool = False,
) -> None:
    """
    Configure the root logger for an application using diskfoundry.

    Args:
        level: Logging level (defaults to DISKFOUNDRY_LOG_LEVEL or INFO)
        format_type: 'json', 'human' or 'simple' (defaults to DISKFOUNDRY_LOG_FORMAT)
        log_file: Optional rotating log file, always written as JSON
            (defaults to DISKFOUNDRY_LOG_FILE)
        use_colors: Use ANSI colors when stdout is a terminal
        include_context: Include module/function/line of the call site

    Storage SDK loggers (``BACKEND_LOGGERS``) are held at WARNING unless
    ``level`` is DEBUG or lower.
    """
    if level is None:
        level = get_log_level_from_env()
    if format_type is None:
        format_type = get_log_format_from_env()
    if log_file is None and os.environ.get("DISKFOUNDRY_LOG_FILE"):
        log_file = Path(os.environ["DISKFOUNDRY_LOG_FILE"])

    formatter: logging.Formatter
    if format_type == "json":
        formatter = JSONFormatter(include_context=include_context)
    elif format_type == "simple":
        formatter = logging.Formatter("%(levelname)s: %(message)s")
    else:
        formatter = HumanReadableFormatter(use_colors=use_colors, include_context=include_context)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(JSONFormatter(include_context=True))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        root_logger.addHandler(handler)

    backend_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in BACKEND_LOGGERS:
        logging.getLogger(name).setLevel(backend_level)
