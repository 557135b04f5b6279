"""
Structured logging for the pedometer service
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor

from pedometer.config import Settings

# Client libraries that log routine connection chatter at INFO
NOISY_LOGGERS = ("aiokafka", "kafka", "uvicorn.access")


def setup_logging(settings: Settings) -> None:
    """
    Route stdlib and structlog output through a single renderer

    Every event is tagged with the service name, environment and the
    configured sample source. Kafka and access logs stay at WARNING unless
    the service itself is configured more quietly than that.
    """
    level = getattr(logging, settings.log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    def add_service_context(logger, method_name, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.service_name)
        event_dict.setdefault("environment", settings.environment)
        event_dict.setdefault("sample_source", settings.sample_source)
        return event_dict

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_context,
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
