"""
Structured logging levels and message shape.
"""

import logging

import pytest

from fetchmoji.util.logging import StructuredLogger


@pytest.fixture
def structured(caplog):
    caplog.set_level(logging.DEBUG, logger="fetchmoji.test")
    log = StructuredLogger("fetchmoji.test")
    log.logger.setLevel(logging.DEBUG)
    return log


class TestStructuredLogger:
    """Operation messages and their levels."""

    def test_operation_message(self, structured, caplog):
        structured.log_operation("rebuild", "success", {"rows": 3})

        assert caplog.records[-1].getMessage() == "Operation: rebuild, Status: success, Details: {'rows': 3}"

    def test_failed_store_operation_is_error(self, structured, caplog):
        structured.log_store_operation("init_schema", {"error": "boom"}, status="failed")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "store.init_schema" in record.getMessage()

    def test_worker_events(self, structured, caplog):
        structured.log_worker_event("start", {"pid": 1})
        structured.log_worker_event("exit", {"exitcode": 1}, status="failed")

        assert [r.levelno for r in caplog.records[-2:]] == [logging.DEBUG, logging.WARNING]

    def test_coordinator_event_includes_state(self, structured, caplog):
        structured.log_coordinator_event("matched", {"is_searching": False})

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert "'is_searching': False" in record.getMessage()

    def test_codec_operation(self, structured, caplog):
        structured.log_codec_operation("encode", count=2, dim=4, nbytes=32)

        assert "'count': 2, 'dim': 4, 'bytes': 32" in caplog.records[-1].getMessage()

    def test_search_truncates_long_queries(self, structured, caplog):
        structured.log_search("x" * 80, ["📣"] * 20, duration_ms=1.234)

        message = caplog.records[-1].getMessage()
        assert "x" * 50 + "..." in message
        assert "'duration_ms': 1.23" in message
        assert message.count("📣") == 10

    def test_artifact_size(self, structured, caplog):
        structured.log_artifact("embeddings.bin.gz", 3 * 1024 * 1024)

        assert "'size_mb': 3.0" in caplog.records[-1].getMessage()

    def test_handler_added_once(self):
        first = StructuredLogger("fetchmoji.once")
        second = StructuredLogger("fetchmoji.once")

        assert first.logger is second.logger
        assert len(second.logger.handlers) == 1
