"""Tests for shared/logging.py - Logging utilities."""

from __future__ import annotations

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from types import SimpleNamespace

import pytest

from poolscore.shared.logging import (
    DEFAULT_LOG_BACKUP_COUNT,
    EVENTS_LEVEL_NUM,
    configure_from_settings,
    configure_logging,
    quiet_driver_loggers,
    setup_events_logger,
)


@pytest.fixture(autouse=True)
def _reset_loggers():
    yield
    for name in ("poolscore", "poolscore.event"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def _read(path):
    with open(path, "r") as f:
        return f.read()


class TestSetupEventsLogger:
    """Tests for setup_events_logger function."""

    def test_creates_logger_with_custom_level(self, tmp_path):
        logger = setup_events_logger(str(tmp_path), events_retention_size=1024)
        assert logger.level == EVENTS_LEVEL_NUM
        assert logger.propagate is False

    def test_creates_events_log_file(self, tmp_path):
        setup_events_logger(str(tmp_path), events_retention_size=1024)
        assert os.path.exists(tmp_path / "events.log")

    def test_adds_rotating_file_handler(self, tmp_path):
        logger = setup_events_logger(str(tmp_path), events_retention_size=2048)
        handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert handlers[0].backupCount == DEFAULT_LOG_BACKUP_COUNT
        assert handlers[0].maxBytes == 2048

    def test_event_format(self, tmp_path):
        """Entries carry timestamp, EVENT level name and the payload."""
        logger = setup_events_logger(str(tmp_path), events_retention_size=1024)
        logger.event({"scoring_pass_complete": 12})

        content = _read(tmp_path / "events.log")
        assert "EVENT" in content
        assert "scoring_pass_complete" in content
        assert re.search(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", content)

    def test_info_is_not_written(self, tmp_path):
        logger = setup_events_logger(str(tmp_path), events_retention_size=1024)
        logger.info("not an event")
        assert "not an event" not in _read(tmp_path / "events.log")


class TestConfigureLogging:
    def test_single_handler_on_repeat(self):
        configure_logging("debug")
        configure_logging("info")

        logger = logging.getLogger("poolscore")
        assert logger.level == logging.INFO
        assert len([h for h in logger.handlers if getattr(h, "_poolscore", False)]) == 1

    def test_driver_loggers_quieted(self):
        quiet_driver_loggers(logging.ERROR)
        assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR
        quiet_driver_loggers()
        assert logging.getLogger("aiosqlite").level == logging.WARNING

    def test_configure_from_settings_creates_events_dir(self, tmp_path):
        events_dir = tmp_path / "logs"
        settings = SimpleNamespace(
            logging=SimpleNamespace(level="WARNING", events_dir=str(events_dir), events_retention_bytes=4096)
        )

        configure_from_settings(settings)

        assert logging.getLogger("poolscore").level == logging.WARNING
        assert (events_dir / "events.log").exists()

    def test_configure_from_settings_without_events(self):
        settings = SimpleNamespace(
            logging=SimpleNamespace(level="INFO", events_dir=None, events_retention_bytes=4096)
        )
        configure_from_settings(settings, level="DEBUG")
        assert logging.getLogger("poolscore").level == logging.DEBUG


def test_level_is_between_warning_and_error():
    assert logging.WARNING < EVENTS_LEVEL_NUM < logging.ERROR
    assert logging.getLevelName(EVENTS_LEVEL_NUM) in ("EVENT", "Level 38")
