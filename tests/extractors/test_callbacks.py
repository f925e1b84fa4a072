"""Tests for the default logging callbacks."""
import logging

from core.enums import SoftFailureKind
from extractors.callbacks import LoggingCallbacks


class TestLoggingCallbacks:
    """Tests for LoggingCallbacks."""

    def test_level_from_name(self):
        assert LoggingCallbacks("warning").level == logging.WARNING

    def test_unknown_level_name_defaults_to_info(self):
        assert LoggingCallbacks("LOUD").level == logging.INFO

    def test_soft_failure_logged_and_counted(self, caplog):
        callbacks = LoggingCallbacks(logging.WARNING)
        with caplog.at_level(logging.DEBUG, logger="taskbar_usage"):
            callbacks.on_soft_failure(SoftFailureKind.MISSING_KEY, "Cannot get HKEY_USERS\\S-1\\X")
        assert callbacks.soft_failures == 1
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "missing_key" in record.getMessage()
        assert "HKEY_USERS\\S-1\\X" in record.getMessage()

    def test_progress_is_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="taskbar_usage"):
            LoggingCallbacks().on_progress(0, 2, "user")
        assert caplog.records[-1].levelno == logging.DEBUG
