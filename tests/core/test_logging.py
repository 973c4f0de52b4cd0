"""Tests for structured logging module."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog

from calkeeper.core.logging import (
    _app_context,
    add_app_context,
    add_otel_context,
    configure_logging,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging():
    """Reset logging and app context between tests."""
    token = _app_context.set(None)
    yield
    _app_context.reset(token)
    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


def _file_handlers() -> list[logging.FileHandler]:
    return [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]


# ---------------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------------


class TestAddAppContext:
    def test_injects_app_name(self):
        _app_context.set("calkeeper")
        result = add_app_context(None, "info", {"event": "test"})
        assert result["app"] == "calkeeper"

    def test_handles_unset_context(self):
        result = add_app_context(None, "info", {"event": "test"})
        assert result["app"] is None


class TestAddOtelContext:
    def test_zeroed_ids_when_no_span(self):
        """No active OTel span — injects zeroed trace_id and span_id."""
        result = add_otel_context(None, "info", {"event": "test"})
        assert result["trace_id"] == "0" * 32
        assert result["span_id"] == "0" * 16

    def test_real_ids_when_span_active(self):
        from opentelemetry.sdk.trace import TracerProvider

        provider = TracerProvider()
        tracer = provider.get_tracer("test")
        with tracer.start_as_current_span("add-event"):
            result = add_otel_context(None, "info", {"event": "test"})
            assert result["trace_id"] != "0" * 32
            assert len(result["trace_id"]) == 32
            assert len(result["span_id"]) == 16
        provider.shutdown()


# ---------------------------------------------------------------------------
# configure_logging()
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_text_format_installs_console_renderer(self):
        configure_logging(fmt="text")
        formatter = logging.getLogger().handlers[0].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        assert isinstance(formatter.processors[-1], structlog.dev.ConsoleRenderer)

    def test_json_format_installs_json_renderer(self):
        configure_logging(fmt="json")
        formatter = logging.getLogger().handlers[0].formatter
        assert isinstance(formatter.processors[-1], structlog.processors.JSONRenderer)

    def test_sets_app_context(self):
        configure_logging(app_name="calkeeper")
        assert _app_context.get() == "calkeeper"

    def test_blank_app_name_leaves_context_unset(self):
        configure_logging(app_name="")
        assert _app_context.get() is None

    def test_log_level_applied(self):
        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_reconfiguring_replaces_handlers(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_no_file_handler_by_default(self):
        configure_logging()
        assert _file_handlers() == []


# ---------------------------------------------------------------------------
# Log file
# ---------------------------------------------------------------------------


class TestLogFile:
    def test_nested_log_file_directory_is_created(self, tmp_path: Path):
        log_file = tmp_path / "deep" / "nested" / "calkeeper.log"
        configure_logging(log_file=log_file)
        assert log_file.parent.is_dir()
        assert len(_file_handlers()) == 1

    def test_file_handler_always_json(self, tmp_path: Path):
        configure_logging(fmt="text", log_file=tmp_path / "calkeeper.log")
        formatter = _file_handlers()[0].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        assert isinstance(formatter.processors[-1], structlog.processors.JSONRenderer)

    def test_json_output_is_valid_json(self, tmp_path: Path):
        log_file = tmp_path / "calkeeper.log"
        configure_logging(level="INFO", log_file=log_file, app_name="calkeeper")

        logging.getLogger("calkeeper.resolver").info("Created calendar %r", "MyCalendar")
        for handler in _file_handlers():
            handler.flush()

        lines = [line for line in log_file.read_text().splitlines() if line.strip()]
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["event"] == "Created calendar 'MyCalendar'"
        assert record["app"] == "calkeeper"
        assert record["logger"] == "calkeeper.resolver"
        assert record["level"] == "info"
        assert record["trace_id"] == "0" * 32
