"""
Structured Logging Utilities

This module centralizes logging setup for the certification API client. It
provides helpers for masking credentials and bearer tokens, emitting JSON log
records, stamping every record with the run's correlation identifier, and
rolling log files so long waits do not grow a single file without bound.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from platformdirs import user_log_dir

from .settings import LoggingSettings

ROOT_LOGGER_NAME = "DevCenterManager"

_SENSITIVE_KEYS = {
    "authorization",
    "access_token",
    "client_secret",
    "key",
    "token",
    "secret",
    "password",
}

_RESERVED_RECORD_FIELDS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Args:
        payload: Arbitrary key-value pairs that may contain client secrets or
            bearer tokens gathered while talking to the identity endpoint.

    Returns:
        Copy of the payload where secret fields are replaced with
        `***masked***`.

    Examples:
        >>> mask_sensitive_data({"client_secret": "s3cr3t", "status": 200})
        {'client_secret': '***masked***', 'status': 200}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        if key.lower() in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, str) and value.lower().startswith("bearer "):
            masked[key] = "***masked***"
        else:
            masked[key] = value
    return masked


def generate_correlation_id() -> str:
    """Create an identifier that links every log entry of one run.

    Examples:
        >>> len(generate_correlation_id())
        12
    """
    return uuid.uuid4().hex[:12]


class CorrelationIdFilter(logging.Filter):
    """Attach ``correlation_id`` to records that do not already carry one."""

    def __init__(self, correlation_id: str) -> None:
        super().__init__()
        self.correlation_id = correlation_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = self.correlation_id
        return True


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Fields passed through ``extra=`` are merged into the top-level object.
    """

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }
        for key, value in vars(record).items():
            if key in _RESERVED_RECORD_FIELDS or key in log_obj:
                continue
            log_obj[key] = value
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


def default_log_dir() -> Path:
    """Directory used when neither settings nor ``DEVCENTER_LOG_DIR`` name one."""
    return Path(user_log_dir(ROOT_LOGGER_NAME, appauthor=False))


def setup_logging(
    config: LoggingSettings,
    *,
    correlation_id: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console_level: Optional[int] = None,
) -> logging.Logger:
    """Configure console and rotating JSON file handlers for the client.

    Args:
        config: Logging settings containing level, size, and retention.
        correlation_id: Identifier stamped on every record; generated when omitted.
        log_dir: Optional directory override for log file placement.
        console_level: Optional level for the console handler only.

    Returns:
        Configured logger scoped to the ``DevCenterManager`` package.
    """
    env_dir = os.environ.get("DEVCENTER_LOG_DIR")
    log_dir = log_dir or config.log_dir or (Path(env_dir) if env_dir else default_log_dir())
    correlation_id = correlation_id or generate_correlation_id()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(config.level_int())

    for handler in list(logger.handlers):
        if getattr(handler, "_devcenter_managed", False):
            logger.removeHandler(handler)
            handler.close()

    correlation_filter = CorrelationIdFilter(correlation_id)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler.setLevel(console_level if console_level is not None else logging.WARNING)
    stream_handler.addFilter(correlation_filter)
    stream_handler._devcenter_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if config.emit_json_logs:
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            log_dir / f"devcenter-{today}.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(correlation_filter)
        file_handler._devcenter_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


__all__ = [
    "ROOT_LOGGER_NAME",
    "CorrelationIdFilter",
    "JSONFormatter",
    "default_log_dir",
    "generate_correlation_id",
    "mask_sensitive_data",
    "setup_logging",
]
