"""
Unit tests for core.logger module.

Tests:
- Logger initialization with name and bound context
- Structured key=value message formatting and escaping
- constructor context on every record
- JSON output mode
- StructuredFormatter on plain and structured records
"""

import json
import logging

import pytest

from zapthread.core import Logger, StructuredFormatter
from zapthread.core.logger import format_kv_pairs


class TestInit:
    """Logger initialization."""

    def test_name(self):
        logger = Logger("zapthread.reply")
        assert logger.name == "zapthread.reply"
        assert logger._logger.name == "zapthread.reply"

    def test_default_not_json(self):
        assert Logger("test")._json_output is False

    def test_json_mode(self):
        assert Logger("test", json_output=True)._json_output is True

    def test_context(self):
        assert Logger("test", attempt="abc")._context == {"attempt": "abc"}


class TestFormatKvPairs:
    """Key-value pairs formatting and escaping."""

    def test_simple(self):
        assert format_kv_pairs({"key": "hello"}) == " key=hello"
        assert format_kv_pairs({"key": 123}) == " key=123"

    def test_with_spaces(self):
        assert format_kv_pairs({"key": "hello world"}) == ' key="hello world"'

    def test_with_equals(self):
        assert format_kv_pairs({"key": "foo=bar"}) == ' key="foo=bar"'

    def test_with_double_quotes(self):
        assert format_kv_pairs({"key": 'say "hello"'}) == ' key="say \\"hello\\""'

    def test_empty_value(self):
        assert format_kv_pairs({"key": ""}) == ' key=""'

    def test_empty_dict(self):
        assert format_kv_pairs({}) == ""

    def test_truncation(self):
        result = format_kv_pairs({"key": "x" * 1500}, max_value_length=1000)
        assert "truncated 500 chars" in result

    def test_no_truncation(self):
        result = format_kv_pairs({"key": "x" * 1500}, max_value_length=None)
        assert "truncated" not in result

    def test_custom_prefix(self):
        assert format_kv_pairs({"key": "val"}, prefix="") == "key=val"


# ============================================================================
# Emission
# ============================================================================


class TestEmit:
    """Records produced by Logger methods."""

    def test_structured_kv_extra(self, caplog):
        logger = Logger("zapthread.test.emit")
        with caplog.at_level(logging.INFO, logger="zapthread.test.emit"):
            logger.info("invoice_resolved", amount_msats=10000)

        record = caplog.records[-1]
        assert record.getMessage() == "invoice_resolved"
        assert record.structured_kv == {"amount_msats": "10000"}

    def test_constructor_context_prepended(self, caplog):
        logger = Logger("zapthread.test.context", attempt="3f2a")
        with caplog.at_level(logging.INFO, logger="zapthread.test.context"):
            logger.warning("payment_failed", error="no route")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.structured_kv == {"attempt": "3f2a", "error": "no route"}

    def test_call_kwargs_override_context(self, caplog):
        logger = Logger("zapthread.test.override", state="idle")
        with caplog.at_level(logging.INFO, logger="zapthread.test.override"):
            logger.info("changed", state="paying")
        assert caplog.records[-1].structured_kv == {"state": "paying"}

    def test_disabled_level_skipped(self, caplog):
        logger = Logger("zapthread.test.disabled")
        with caplog.at_level(logging.WARNING, logger="zapthread.test.disabled"):
            logger.debug("noise")
        assert not [r for r in caplog.records if r.name == "zapthread.test.disabled"]

    def test_json_output(self, caplog):
        logger = Logger("zapthread.test.json", json_output=True, attempt="a1")
        with caplog.at_level(logging.ERROR, logger="zapthread.test.json"):
            logger.error("reply_failed", reason="timeout")

        parsed = json.loads(caplog.records[-1].getMessage())
        assert parsed["message"] == "reply_failed"
        assert parsed["level"] == "error"
        assert parsed["logger"] == "zapthread.test.json"
        assert parsed["attempt"] == "a1"
        assert parsed["reason"] == "timeout"

    def test_exception_attaches_traceback(self, caplog):
        logger = Logger("zapthread.test.exc")
        with caplog.at_level(logging.ERROR, logger="zapthread.test.exc"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("unexpected")
        assert caplog.records[-1].exc_info is not None


# ============================================================================
# StructuredFormatter
# ============================================================================


class TestStructuredFormatter:
    """Formatting of plain and structured records."""

    @pytest.fixture
    def formatter(self):
        return StructuredFormatter()

    def _record(self, msg, **extra):
        record = logging.LogRecord("zapthread.cli", logging.INFO, __file__, 1, msg, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_plain_record(self, formatter):
        assert formatter.format(self._record("started")) == "info zapthread.cli started"

    def test_structured_record(self, formatter):
        record = self._record("relay_list_changed", structured_kv={"count": "2"})
        assert formatter.format(record) == "info zapthread.cli relay_list_changed count=2"
