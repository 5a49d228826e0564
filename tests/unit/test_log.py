"""Tests for logging configuration."""

import logging

import pytest

from runback.log import LOGGER_NAME, LogLevel, configure_logging, parse_level


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger(LOGGER_NAME)
    level, handlers = logger.level, list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.handlers = handlers


def test_parse_level_accepts_names_and_values():
    assert parse_level("warning") is LogLevel.WARN
    assert parse_level("debug") is LogLevel.DEBUG
    assert parse_level(0) is LogLevel.NONE
    with pytest.raises(ValueError):
        parse_level("loud")


def test_sink_receives_level_and_message():
    seen = []
    configure_logging(LogLevel.DEBUG, sink=lambda level, message: seen.append((level, message)))
    logging.getLogger("runback.engine").warning("careful")
    logging.getLogger("runback.engine").debug("details")
    assert ("warn", "careful") in seen
    assert ("debug", "details") in seen


def test_none_level_silences_everything():
    seen = []
    configure_logging(LogLevel.NONE, sink=lambda level, message: seen.append(message))
    logging.getLogger("runback.engine").error("boom")
    assert seen == []
