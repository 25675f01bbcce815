"""
Unit tests for structured logging setup.
"""

import json
import logging

import pytest
import structlog

from taskflow.config import Settings
from taskflow.observability.logging import bind_context, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def test_json_records_carry_extra_and_bound_context(capsys, restore_root_logger):
    setup_logging(Settings(_env_file=None, log_format="json", log_level="INFO"))
    bind_context(component="producer")

    logging.getLogger("taskflow.test").info(
        "Generated task", extra={"task_id": 7, "task_type": 3}
    )

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "Generated task"
    assert record["task_id"] == 7
    assert record["task_type"] == 3
    assert record["component"] == "producer"
    assert record["level"] == "info"


def test_log_level_filters_records(capsys, restore_root_logger):
    setup_logging(Settings(_env_file=None, log_format="json", log_level="WARNING"))

    logging.getLogger("taskflow.test").info("hidden")
    logging.getLogger("taskflow.test").warning("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "shown" in out
