"""Tests for structured logging setup and secret masking."""

import json
import logging

from DevCenterManager.logging_config import (
    ROOT_LOGGER_NAME,
    JSONFormatter,
    generate_correlation_id,
    mask_sensitive_data,
    setup_logging,
)
from DevCenterManager.settings import LoggingSettings


def test_mask_sensitive_data():
    masked = mask_sensitive_data(
        {
            "client_secret": "s3cr3t",
            "Authorization": "Bearer abc",
            "header": "Bearer xyz",
            "status": 200,
        }
    )

    assert masked == {
        "client_secret": "***masked***",
        "Authorization": "***masked***",
        "header": "***masked***",
        "status": 200,
    }


def test_json_formatter_merges_extras_and_masks():
    record = logging.makeLogRecord(
        {
            "name": "DevCenterManager.network.auth",
            "levelname": "INFO",
            "msg": "token acquired for %s",
            "args": ("tenant-1",),
            "token": "abc",
            "expires_in": 3600,
            "correlation_id": "abc123",
        }
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "token acquired for tenant-1"
    assert payload["level"] == "INFO"
    assert payload["expires_in"] == 3600
    assert payload["token"] == "***masked***"
    assert payload["correlation_id"] == "abc123"
    assert payload["timestamp"].endswith("Z")


def test_correlation_id_shape():
    first, second = generate_correlation_id(), generate_correlation_id()
    assert len(first) == 12
    assert first != second


def test_setup_logging_writes_json_lines(tmp_path):
    logger = setup_logging(LoggingSettings(level="DEBUG"), correlation_id="run-0001", log_dir=tmp_path)

    logging.getLogger(f"{ROOT_LOGGER_NAME}.tests").info("hello", extra={"product_id": "11"})
    for handler in logger.handlers:
        handler.flush()

    (log_file,) = tmp_path.glob("devcenter-*.jsonl")
    entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert entry["message"] == "hello"
    assert entry["product_id"] == "11"
    assert entry["correlation_id"] == "run-0001"


def test_setup_logging_replaces_managed_handlers(tmp_path):
    settings = LoggingSettings()
    setup_logging(settings, log_dir=tmp_path)
    logger = setup_logging(settings, log_dir=tmp_path)

    managed = [h for h in logger.handlers if getattr(h, "_devcenter_managed", False)]
    assert len(managed) == 2


def test_setup_logging_without_file(tmp_path):
    logger = setup_logging(LoggingSettings(emit_json_logs=False), log_dir=tmp_path / "unused")

    assert not (tmp_path / "unused").exists()
    managed = [h for h in logger.handlers if getattr(h, "_devcenter_managed", False)]
    assert len(managed) == 1


def test_log_dir_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("DEVCENTER_LOG_DIR", str(tmp_path / "envlogs"))

    setup_logging(LoggingSettings())

    assert list((tmp_path / "envlogs").glob("devcenter-*.jsonl"))
