"""
Tests for structured logging functionality.
"""

import json
import logging
import sys

import pytest

from byrpublish.cli.logging import (
    NOISY_LOGGERS,
    ContextLogger,
    JSONFormatter,
    TextFormatter,
    get_logger,
    setup_logging,
)


def make_record(msg="Test message", args=(), level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="TestLogger",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


# =============================================================================
# JSONFormatter Tests
# =============================================================================


class TestJSONFormatter:
    """Tests for the JSON log formatter."""

    def test_basic_format(self):
        """Test basic JSON log output format."""
        parsed = json.loads(JSONFormatter().format(make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "TestLogger"
        assert parsed["message"] == "Test message"
        assert parsed["timestamp"].endswith("Z")

    def test_json_format_with_args(self):
        """Test JSON format with message formatting args."""
        parsed = json.loads(JSONFormatter().format(make_record("Staged %s files", (3,))))
        assert parsed["message"] == "Staged 3 files"

    def test_json_format_keeps_unicode(self):
        """Chinese messages are written as-is, not escaped."""
        output = JSONFormatter().format(make_record("创建了高等数学"))
        assert "创建了高等数学" in output

    def test_json_format_with_exception(self):
        """Test JSON format includes exception info."""
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record("An error occurred", level=logging.ERROR, exc_info=sys.exc_info())

        parsed = json.loads(JSONFormatter().format(record))

        assert parsed["exception"]["type"] == "ValueError"
        assert parsed["exception"]["message"] == "Test error"
        assert "Traceback" in parsed["exception"]["traceback"]

    def test_json_format_with_extra_fields(self):
        """Test JSON format includes extra context fields."""
        record = make_record()
        record.record_id = "abc123"
        record.user_id = 42

        parsed = json.loads(JSONFormatter().format(record))

        assert parsed["context"] == {"record_id": "abc123", "user_id": 42}

    def test_json_format_with_static_fields(self):
        """Test JSON format includes static fields."""
        formatter = JSONFormatter(static_fields={"service": "byrpublish"})
        parsed = json.loads(formatter.format(make_record()))
        assert parsed["service"] == "byrpublish"

    def test_json_format_optional_parts(self):
        """Timestamp, level and logger can be dropped; location added."""
        formatter = JSONFormatter(
            include_timestamp=False, include_level=False, include_logger=False, include_location=True
        )
        parsed = json.loads(formatter.format(make_record()))
        assert set(parsed) == {"message", "location"}
        assert parsed["location"]["line"] == 42


# =============================================================================
# TextFormatter Tests
# =============================================================================


class TestTextFormatter:
    """Tests for the text formatter."""

    def test_plain(self):
        output = TextFormatter(use_colors=False).format(make_record())
        assert "INFO" in output
        assert "TestLogger: Test message" in output
        assert "\033[" not in output

    def test_colors(self):
        output = TextFormatter(use_colors=True).format(make_record(level=logging.ERROR))
        assert output.startswith(TextFormatter.COLORS[logging.ERROR])
        assert output.endswith(TextFormatter.RESET)

    def test_context_pairs(self):
        record = make_record()
        record.step = "commit_files"
        output = TextFormatter(use_colors=False).format(record)
        assert output.endswith("step='commit_files'")

    def test_context_disabled(self):
        record = make_record()
        record.step = "commit_files"
        assert "step=" not in TextFormatter(use_colors=False, include_context=False).format(record)


# =============================================================================
# ContextLogger Tests
# =============================================================================


class TestContextLogger:
    """Tests for ContextLogger."""

    def test_bind_adds_context(self, caplog):
        """Bound fields reach the log record."""
        logger = get_logger("byrpublish.test", user="octocat").bind(record_id="abc")

        with caplog.at_level(logging.INFO, logger="byrpublish.test"):
            logger.info("Staged")

        record = caplog.records[-1]
        assert record.user == "octocat"
        assert record.record_id == "abc"

    def test_bind_does_not_mutate(self, caplog):
        base = ContextLogger("byrpublish.test")
        base.bind(extra_field=1)
        with caplog.at_level(logging.INFO, logger="byrpublish.test"):
            base.info("plain")
        assert not hasattr(caplog.records[-1], "extra_field")

    def test_call_extra_overrides(self, caplog):
        logger = get_logger("byrpublish.test", step="a")
        with caplog.at_level(logging.WARNING, logger="byrpublish.test"):
            logger.warning("x", extra={"step": "b"})
        assert caplog.records[-1].step == "b"

    def test_exception_has_traceback(self, caplog):
        logger = get_logger("byrpublish.test")
        with caplog.at_level(logging.ERROR, logger="byrpublish.test"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("failed")
        assert caplog.records[-1].exc_info is not None


# =============================================================================
# setup_logging Tests
# =============================================================================


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_replaces_handlers(self, restore_root_logger):
        root = restore_root_logger
        setup_logging(level=logging.DEBUG)
        setup_logging(level=logging.WARNING)
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING

    def test_json_handler(self, restore_root_logger):
        setup_logging(log_format="json", static_fields={"service": "byrpublish"})
        formatter = restore_root_logger.handlers[0].formatter
        assert isinstance(formatter, JSONFormatter)
        assert formatter.static_fields == {"service": "byrpublish"}

    def test_log_file(self, restore_root_logger, tmp_path):
        """File output is written without colors."""
        path = tmp_path / "publish.log"
        setup_logging(level=logging.INFO, log_file=str(path))

        logging.getLogger("PublishOrchestrator").info("Opened pull request")
        for handler in restore_root_logger.handlers:
            handler.flush()

        text = path.read_text(encoding="utf-8")
        assert "PublishOrchestrator: Opened pull request" in text
        assert "\033[" not in text

    def test_quiets_noisy_loggers(self, restore_root_logger):
        setup_logging(level=logging.DEBUG)
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
