"""Tests for logging configuration and log message templates."""

import json
import logging
import sys

import pytest

from unistream.infrastructure.observability.log_messages import LogMessages
from unistream.infrastructure.observability.logging import (
    ConsoleFormatter,
    CorrelationIdFilter,
    JsonLogFormatter,
    configure_logging,
    correlation_id_var,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_replaces_handlers_and_sets_level(self) -> None:
        configure_logging(log_level="DEBUG")
        configure_logging(log_level="WARNING")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING

    def test_http_libraries_are_quieted(self) -> None:
        configure_logging(log_level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING


class TestJsonFormatter:
    def _record(self, msg: str = "hello", **extra: object) -> logging.LogRecord:
        record = logging.LogRecord("unistream.test", logging.INFO, __file__, 1, msg, None, None)
        record.__dict__.update(extra)
        CorrelationIdFilter().filter(record)
        return record

    def test_record_carries_correlation_id(self) -> None:
        set_correlation_id("abc-123")

        data = json.loads(JsonLogFormatter().format(self._record()))

        assert data["message"] == "hello"
        assert data["correlation_id"] == "abc-123"
        assert data["level"] == "INFO"
        assert data["logger"] == "unistream.test"
        assert data["app"] == "unistream"
        assert "cid" not in data

    def test_empty_correlation_id_is_dropped(self) -> None:
        correlation_id_var.set("")

        data = json.loads(JsonLogFormatter().format(self._record()))

        assert "correlation_id" not in data

    def test_extra_context_is_top_level(self) -> None:
        data = json.loads(JsonLogFormatter().format(self._record(source="NETEASE", song_id="186016")))

        assert data["source"] == "NETEASE"
        assert data["song_id"] == "186016"


class TestConsoleFormatter:
    def test_chain_is_printed_root_cause_first(self) -> None:
        try:
            try:
                raise ConnectionError("mirror down")
            except ConnectionError as e:
                raise RuntimeError("search failed") from e
        except RuntimeError:
            exc_info = sys.exc_info()

        text = ConsoleFormatter().formatException(exc_info)
        lines = [line for line in text.splitlines() if line.startswith("╰─►")]

        assert lines == [
            "╰─► builtins.ConnectionError: mirror down",
            "╰─► builtins.RuntimeError: search failed",
        ]

    def test_short_correlation_id_placeholder(self) -> None:
        correlation_id_var.set("")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "m", None, None)
        CorrelationIdFilter().filter(record)
        assert record.cid == "--------"

        set_correlation_id("0123456789abcdef")
        CorrelationIdFilter().filter(record)
        assert record.cid == "01234567"


class TestLogMessages:
    def test_provider_failed(self) -> None:
        message = LogMessages.provider_failed(provider="YOUTUBE", query="周杰伦", error="timed out after 8000ms")

        assert message.splitlines()[0] == "⚠️ Provider Search Failed"
        assert "├─ Provider: YOUTUBE" in message
        assert "├─ Query: 周杰伦" in message
        assert message.splitlines()[-1].startswith("└─ 💡")

    def test_mirror_rotated_without_hint_closes_tree(self) -> None:
        message = LogMessages.mirror_rotated(
            pool="piped", failed="https://a", next_endpoint="https://b", error="502"
        )

        assert message.splitlines()[-1] == "└─ Reason: 502"
