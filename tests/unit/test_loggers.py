"""
Unit tests for log sinks.
"""

import logging

import pytest

from opentracing_stackdriver import LogEntry, LoggerFunc, MultiLogger, StdlibLogger, wrap
from opentracing_stackdriver.loggers import as_logger

from conftest import RecordingLogger


def make_entry(**overrides) -> LogEntry:
    values = {
        "payload": {"message": "checkout", "elapsed": 12},
        "labels": {"user": "42"},
        "trace_id": "105445aa7843bc8bf206b12000100000",
    }
    values.update(overrides)
    return LogEntry(**values)


class TestMultiLogger:
    """Test cases for fan-out to several sinks."""

    def test_same_logger_twice_receives_entry_twice(self):
        target = RecordingLogger()
        multi = MultiLogger(target, target)

        multi.log(make_entry())

        assert len(target.entries) == 2

    def test_failing_logger_does_not_stop_others(self):
        def broken(entry):
            raise ConnectionError("sink down")

        target = RecordingLogger()
        multi = MultiLogger(broken, target)

        multi.log(make_entry())

        assert len(target.entries) == 1

    def test_close_reaches_every_logger(self):
        first, second = RecordingLogger(), RecordingLogger()
        MultiLogger(first, second).close()

        assert first.closed and second.closed


class TestStdlibLogger:
    """Test cases for writing entries through the logging module."""

    def test_message_and_fields(self, caplog):
        target = logging.getLogger("spans.test")
        with caplog.at_level(logging.INFO, logger="spans.test"):
            StdlibLogger(target).log(make_entry())

        record = caplog.records[0]
        assert record.levelno == logging.INFO
        assert record.getMessage() == "checkout elapsed=12"
        assert record.labels == {"user": "42"}
        assert record.trace_id == "105445aa7843bc8bf206b12000100000"

    def test_error_severity(self, caplog):
        target = logging.getLogger("spans.test")
        with caplog.at_level(logging.INFO, logger="spans.test"):
            wrap(target).log(make_entry(payload={"error.object": "boom"}, severity="ERROR"))

        assert caplog.records[0].levelno == logging.ERROR
        assert caplog.records[0].getMessage() == "error.object=boom"

    def test_disabled_level_is_skipped(self, caplog):
        target = logging.getLogger("spans.quiet")
        with caplog.at_level(logging.WARNING, logger="spans.quiet"):
            StdlibLogger(target).log(make_entry())

        assert caplog.records == []


class TestAsLogger:
    def test_coercion(self):
        recording = RecordingLogger()

        assert as_logger(recording) is recording
        assert isinstance(as_logger(logging.getLogger("x")), StdlibLogger)
        assert isinstance(as_logger(lambda entry: None), LoggerFunc)

    def test_rejects_other_values(self):
        with pytest.raises(TypeError):
            as_logger("not a logger")
