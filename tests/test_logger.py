"""Tests for core/logger.py."""

from __future__ import annotations

import io
import json
import logging

import pytest
import structlog

from core import logger as core_logger


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
    core_logger._configured = False


def _last_json(stream: io.StringIO) -> dict:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


class TestSetupLogging:

    def test_prod_renders_json(self) -> None:
        stream = io.StringIO()
        core_logger.setup_logging(level="debug", env="prod", stream=stream)
        log = core_logger.get_logger("tests.logger")
        log.info("signing_coordinator.order_signed", order_hash="0xabc", count=2)

        record = _last_json(stream)
        assert record["event"] == "signing_coordinator.order_signed"
        assert record["order_hash"] == "0xabc"
        assert record["count"] == 2
        assert record["level"] == "info"
        assert record["logger"] == "tests.logger"
        assert "timestamp" in record

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        core_logger.setup_logging(level="WARNING", env="prod", stream=stream)
        log = core_logger.get_logger("tests.logger.level")
        log.info("dropped")
        log.warning("kept")

        out = stream.getvalue()
        assert "dropped" not in out
        assert "kept" in out

    def test_dev_renders_console(self) -> None:
        stream = io.StringIO()
        core_logger.setup_logging(level="INFO", env="dev", stream=stream)
        core_logger.get_logger("tests.logger.dev").info("rest_client.connected")

        out = stream.getvalue()
        assert "rest_client.connected" in out
        with pytest.raises(json.JSONDecodeError):
            json.loads(out.strip().splitlines()[-1])

    def test_secrets_redacted(self) -> None:
        stream = io.StringIO()
        core_logger.setup_logging(level="INFO", env="prod", stream=stream)
        core_logger.get_logger("tests.logger.redact").info(
            "signer.configured",
            private_key="0x" + "ab" * 32,
            signature="0x" + "cd" * 65,
            order_hash="0x" + "ef" * 32,
        )

        record = _last_json(stream)
        assert record["private_key"] == "***"
        assert record["signature"] == "0xcdcdcdcd..."
        assert record["order_hash"] == "0x" + "ef" * 32
        assert "ab" * 32 not in stream.getvalue()

    def test_get_logger_configures_once(self) -> None:
        core_logger._configured = False
        core_logger.get_logger("tests.logger.lazy")
        assert core_logger._configured


class TestRedactSecrets:

    def test_short_signature_untouched(self) -> None:
        event = {"event": "x", "signature": "0x01"}
        assert core_logger.redact_secrets(None, "info", event)["signature"] == "0x01"

    def test_other_fields_untouched(self) -> None:
        event = {"event": "x", "maker": "0xabc", "api_key": "k"}
        result = core_logger.redact_secrets(None, "info", event)
        assert result == {"event": "x", "maker": "0xabc", "api_key": "***"}
