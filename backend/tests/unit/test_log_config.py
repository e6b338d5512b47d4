"""
Unit tests for the JSON log formatter.
"""
import json
import logging
import sys

from leadconsole.core.log_config import StructuredFormatter, configure_logging


def make_record(message, *args, exc_info=None):
    return logging.LogRecord("leadconsole.test", logging.WARNING, __file__, 10, message, args, exc_info)


class TestStructuredFormatter:
    def test_quotes_in_message_stay_valid_json(self):
        """Quotes and newlines in the message are escaped."""
        line = StructuredFormatter().format(make_record('Provider error: "bad"\nsecond line'))
        entry = json.loads(line)
        assert entry["message"] == 'Provider error: "bad"\nsecond line'
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "leadconsole.test"

    def test_arguments_are_interpolated(self):
        """Message arguments are applied before serialization."""
        entry = json.loads(StructuredFormatter().format(make_record("%s leads", 3)))
        assert entry["message"] == "3 leads"

    def test_extra_fields_included(self):
        """Fields passed through extra become top-level keys."""
        record = make_record("slow request")
        record.duration_ms = 812
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["duration_ms"] == 812

    def test_exception_included(self):
        """The formatted traceback travels in one JSON string."""
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record("failed", exc_info=sys.exc_info())
        entry = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestConfigureLogging:
    def test_json_handler_installed(self):
        """JSON mode installs a single structured handler on the root logger."""
        root = logging.getLogger()
        previous_handlers, previous_level = list(root.handlers), root.level
        try:
            configure_logging("DEBUG", json_format=True)
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = previous_handlers
            root.setLevel(previous_level)
