"""Tests for structlog configuration."""

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from cpamm.logs import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def emitted_events():
    logger = structlog.get_logger()
    with capture_logs() as logs:
        logger.debug("debug_event")
        logger.info("info_event")
        logger.warning("warning_event")
    return [entry["event"] for entry in logs]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_level_name_filters(self):
        configure_logging("warning")
        assert emitted_events() == ["warning_event"]

    def test_numeric_level(self):
        configure_logging(logging.DEBUG)
        assert emitted_events() == ["debug_event", "info_event", "warning_event"]

    def test_unknown_name_falls_back_to_info(self):
        configure_logging("chatty")
        assert emitted_events() == ["info_event", "warning_event"]
