"""
Unit tests for the shared logging configuration.
"""

import json
import logging

import pytest
import structlog

from request_cache.shared.logging import configure_logging


@pytest.fixture
def processors():
    configure_logging("cache", "debug")
    yield structlog.get_config()["processors"]
    structlog.reset_defaults()


def render(processors, event_dict):
    logger = logging.getLogger("cache.handle")
    logger.setLevel(logging.DEBUG)
    for processor in processors:
        event_dict = processor(logger, "info", event_dict)
    return json.loads(event_dict)


def test_timestamp_is_iso_string(processors):
    event = render(processors, {"event": "Cache connected"})

    assert isinstance(event["timestamp"], str)
    assert "T" in event["timestamp"]


def test_service_context_from_logger_name(processors):
    event = render(processors, {"event": "Cache flushed"})

    assert event["logger"] == "cache.handle"
    assert event["service"] == "cache"
    assert event["level"] == "info"
