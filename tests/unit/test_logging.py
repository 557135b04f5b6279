"""Test logging configuration."""

import logging

import pytest
import structlog

from pedometer.config import Settings
from pedometer.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    structlog.reset_defaults()
    for name in ("aiokafka", "kafka", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestSetupLogging:
    """Test structured logging setup."""

    def test_json_renderer(self):
        setup_logging(Settings(log_format="json"))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer(self):
        setup_logging(Settings(log_format="console"))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_service_context(self):
        settings = Settings(service_name="pedometer-test", environment="test", sample_source="kafka")
        setup_logging(settings)
        add_context = structlog.get_config()["processors"][4]

        event = add_context(None, "info", {"event": "Tracking started"})
        assert event["service"] == "pedometer-test"
        assert event["environment"] == "test"
        assert event["sample_source"] == "kafka"

    def test_kafka_logs_quietened(self):
        setup_logging(Settings(log_level="DEBUG"))
        assert logging.getLogger("aiokafka").level == logging.WARNING

        setup_logging(Settings(log_level="ERROR"))
        assert logging.getLogger("aiokafka").level == logging.ERROR
