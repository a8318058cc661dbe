"""
Tests for structured logging configuration.
"""

import json
import logging

import pytest
import structlog
from contentcore.config import MonitoringConfig
from contentcore.observability import add_correlation_id, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestCorrelationId:
    def test_bound_id_is_added(self):
        with structlog.contextvars.bound_contextvars(correlation_id="abc123"):
            event = add_correlation_id(None, "info", {"event": "x"})
        assert event["correlation_id"] == "abc123"

    def test_unbound_context_is_untouched(self):
        assert add_correlation_id(None, "info", {"event": "x"}) == {"event": "x"}


class TestConfigureLogging:
    def test_json_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "contentcore.jsonl"
        configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file)))

        with structlog.contextvars.bound_contextvars(correlation_id="req-1"):
            structlog.get_logger("contentcore.test").info("Extraction complete", words=13)
        for handler in logging.getLogger().handlers:
            handler.flush()

        records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        event = next(r for r in records if r["event"] == "Extraction complete")
        assert event["words"] == 13
        assert event["correlation_id"] == "req-1"
        assert event["level"] == "info"
        assert event["logger"] == "contentcore.test"

    def test_level_is_applied(self, tmp_path):
        configure_logging(MonitoringConfig(log_level="ERROR", log_file=str(tmp_path / "app.log")))
        assert logging.getLogger().level == logging.ERROR
        assert len(logging.getLogger().handlers) == 1
