"""Tests for SimpleLogger."""

import logging
from unittest.mock import Mock, patch

from rpc_messenger.infrastructure.simple_logger import SimpleLogger
from rpc_messenger.ports.logger import LoggerPort


class TestSimpleLogger:
    """Test cases for SimpleLogger."""

    def test_implements_logger_port(self):
        """Test that SimpleLogger implements LoggerPort."""
        assert isinstance(SimpleLogger(), LoggerPort)

    def test_default_name_and_level(self):
        """Test the package logger is used at INFO by default."""
        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger

            SimpleLogger()

            mock_get_logger.assert_called_once_with("rpc_messenger")
            mock_logger.setLevel.assert_called_once_with(logging.INFO)

    def test_handler_added_once(self):
        """Test a stream handler is only added to a bare logger."""
        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = Mock()
            mock_logger.handlers = [Mock()]
            mock_get_logger.return_value = mock_logger

            SimpleLogger()

            mock_logger.addHandler.assert_not_called()

    def test_context_passed_as_extra(self):
        """Test keyword context reaches the record."""
        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = Mock()
            mock_logger.handlers = [Mock()]
            mock_get_logger.return_value = mock_logger

            logger = SimpleLogger()
            logger.info("Registered handler", channel_name="echo")
            logger.warning("Dropping", channel="x:req")

            mock_logger.info.assert_called_once_with(
                "Registered handler", extra={"channel_name": "echo"}
            )
            mock_logger.warning.assert_called_once_with("Dropping", extra={"channel": "x:req"})

    def test_exception_includes_traceback(self):
        """Test exception() logs at error level with exc_info."""
        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = Mock()
            mock_logger.handlers = [Mock()]
            mock_get_logger.return_value = mock_logger
            error = RuntimeError("boom")

            SimpleLogger().exception("Handler failed", exc_info=error, channel_name="echo")

            mock_logger.error.assert_called_once_with(
                "Handler failed", exc_info=error, extra={"channel_name": "echo"}
            )

    def test_real_logging(self, caplog):
        """Test records are emitted with their context attributes."""
        logger = SimpleLogger(name="rpc_messenger.test")
        with caplog.at_level(logging.INFO, logger="rpc_messenger.test"):
            logger.info("Messenger started", client_identity="web-1")
        record = caplog.records[-1]
        assert record.getMessage() == "Messenger started"
        assert record.client_identity == "web-1"

    def test_reserved_keys_prefixed(self, caplog):
        """Test context keys clashing with record attributes do not raise."""
        logger = SimpleLogger(name="rpc_messenger.test")
        with caplog.at_level(logging.INFO, logger="rpc_messenger.test"):
            logger.info("Dropping", message="raw", name="echo", channel="x:req")
        record = caplog.records[-1]
        assert record.getMessage() == "Dropping"
        assert record.ctx_message == "raw"
        assert record.ctx_name == "echo"
        assert record.channel == "x:req"
