"""
Tests for structlog configuration and run correlation.
"""

import json
import logging

import pytest
import structlog
from structlog.contextvars import bound_contextvars

from pagesift.config import MonitoringConfig
from pagesift.observability import add_run_id, configure_logging


@pytest.mark.unit
class TestAddRunId:
    """Test the run-id processor."""

    def test_adds_bound_run_id(self):
        with bound_contextvars(run_id="r1"):
            assert add_run_id(None, "info", {}) == {"run_id": "r1"}

    def test_without_run_id(self):
        assert add_run_id(None, "info", {"event": "x"}) == {"event": "x"}

    def test_explicit_value_wins(self):
        with bound_contextvars(run_id="r1"):
            assert add_run_id(None, "info", {"run_id": "mine"}) == {"run_id": "mine"}


@pytest.mark.unit
class TestConfigureLogging:
    """Test handler and renderer setup."""

    def test_json_lines_to_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "run.log"
        configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file)))

        with bound_contextvars(run_id="abc"):
            structlog.get_logger("pagesift.test").info("stage_completed", stage="convert")
        structlog.get_logger("pagesift.test").debug("not written")

        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert len(records) == 1
        assert records[0]["event"] == "stage_completed"
        assert records[0]["run_id"] == "abc"
        assert records[0]["stage"] == "convert"
        assert records[0]["level"] == "info"
        assert records[0]["logger"] == "pagesift.test"

    def test_console_handler_on_stderr(self, restore_logging):
        configure_logging(MonitoringConfig(log_level="warning"))
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)
