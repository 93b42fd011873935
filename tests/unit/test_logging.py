"""Tests for logging configuration."""

import logging

import structlog

from matchmaker.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


class TestLoggingConfiguration:
    """Tests for logging setup."""

    def test_configure_logging_sets_up_structlog(self):
        """configure_logging() sets up structlog properly."""
        configure_logging()
        logger = structlog.get_logger("test")
        assert logger is not None

    def test_get_logger_returns_bound_logger(self):
        """get_logger() returns a BoundLogger (or proxy)."""
        logger = get_logger("test_module")
        assert hasattr(logger, "info")
        assert hasattr(logger, "error")
        assert hasattr(logger, "debug")

    def test_logger_can_bind_context(self):
        """Logger can bind context variables."""
        logger = get_logger("test")
        bound_logger = logger.bind(session_id="test-123", action="init")
        bound_logger.info("test_message")

    def test_console_only_by_default(self):
        configure_logging()
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert not isinstance(handlers[0], logging.FileHandler)


class TestFileLogging:
    def test_log_dir_adds_file_handler(self, tmp_path):
        configure_logging(log_dir=tmp_path)
        try:
            handlers = logging.getLogger().handlers
            assert any(isinstance(h, logging.FileHandler) for h in handlers)
            assert list(tmp_path.glob("matchmaker_*.log"))
        finally:
            configure_logging()

    def test_old_log_files_are_culled(self, tmp_path):
        for i in range(6):
            (tmp_path / f"matchmaker_2026010{i}_000000.log").write_text("old")

        configure_logging(log_dir=tmp_path, log_sessions_to_keep=3)
        try:
            assert len(list(tmp_path.glob("matchmaker_*.log"))) == 3
        finally:
            configure_logging()


class TestContextBinding:
    def test_bind_and_clear_context(self):
        clear_context()
        bind_context(request_id="req-1", session_id="s-1")

        context = structlog.contextvars.get_contextvars()
        assert context == {"request_id": "req-1", "session_id": "s-1"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
