"""Tests for attendance.core.logging — formatters and setup."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager

import pytest

from attendance.core.logging import DevFormatter, JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="attendance.chain.caller",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="Falling back for %s",
        args=("get_event",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@contextmanager
def preserved_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    try:
        yield root
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "attendance.chain.caller"
        assert entry["message"] == "Falling back for get_event"
        assert "timestamp" in entry

    def test_contract_fields(self):
        record = _record(
            contract_method="get_event",
            backend="simulated",
            fallback_reason="query failed",
            duration_ms=12.5,
        )
        entry = json.loads(JSONFormatter().format(record))
        assert entry["contract_method"] == "get_event"
        assert entry["backend"] == "simulated"
        assert entry["fallback_reason"] == "query failed"
        assert entry["duration_ms"] == 12.5
        assert "chain" not in entry

    def test_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad"


class TestDevFormatter:
    def test_backend_prefix(self):
        line = DevFormatter().format(_record(backend="simulated"))
        assert "[simulated] Falling back for get_event" in line

    def test_duration_suffix(self):
        line = DevFormatter().format(_record(duration_ms=1234.4))
        assert "(1234 ms)" in line

    def test_no_backend(self):
        line = DevFormatter().format(_record())
        assert "attendance.chain.caller: Falling back for get_event" in line


class TestSetupLogging:
    def test_development_uses_dev_formatter(self):
        with preserved_root_logger() as root:
            setup_logging("development", "DEBUG")
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[-1].formatter, DevFormatter)

    @pytest.mark.parametrize("env", ["staging", "production"])
    def test_deployed_envs_use_json(self, env):
        with preserved_root_logger() as root:
            setup_logging(env, "warning")
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[-1].formatter, JSONFormatter)

    def test_quiets_http_libraries(self):
        with preserved_root_logger():
            setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING
