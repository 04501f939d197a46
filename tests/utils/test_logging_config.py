"""
Tests for the structlog setup helpers.
"""

import json
import logging

import pytest
import structlog

from songreply.utils import logging_config
from songreply.utils.logging_config import get_logger, log_error, log_performance, setup_logging


@pytest.fixture
def configured(tmp_path, monkeypatch):
    monkeypatch.setattr(logging_config, "_logger_instance", None)
    instance = setup_logging(log_dir=str(tmp_path), log_level="INFO", enable_console=False)
    yield tmp_path, instance

    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    structlog.reset_defaults()


def read_events(path):
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


class TestLoggingSetup:

    def test_helpers_are_noops_before_setup(self, monkeypatch):
        monkeypatch.setattr(logging_config, "_logger_instance", None)

        log_performance("noop", 0.1)
        log_error(RuntimeError("ignored"), {})

        with pytest.raises(RuntimeError):
            get_logger("anything")

    def test_performance_written_as_json(self, configured):
        log_dir, _ = configured

        log_performance("generate_candidates", 0.25, candidates=3)

        events = read_events(log_dir / "songreply.log")
        assert events[-1]["event"] == "performance_metric"
        assert events[-1]["duration_ms"] == 250
        assert events[-1]["candidates"] == 3

    def test_errors_go_to_error_log(self, configured):
        log_dir, _ = configured

        log_error(ValueError("bad width"), {"stage": "semantic"})

        events = read_events(log_dir / "errors.log")
        assert events[-1]["error_type"] == "ValueError"
        assert events[-1]["context"] == {"stage": "semantic"}

    def test_request_context_bound(self, configured):
        log_dir, instance = configured

        instance.set_request_context("req-1", user_id="user-9")
        get_logger("test").info("hello")
        structlog.contextvars.clear_contextvars()

        event = read_events(log_dir / "songreply.log")[-1]
        assert event["request_id"] == "req-1"
        assert event["user_id"] == "user-9"

    def test_quiet_loggers(self, configured):
        assert logging.getLogger("asyncpg").level == logging.WARNING
