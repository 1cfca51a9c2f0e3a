"""
Module: logger.py
Description: Structured logging configuration for Webhook Relay.

Every queue, delivery and notification log line is a single JSON object
carrying the emitting module, so one destination can be followed
through enqueue, dispatch, retries and completion by filtering on
destination_id.

Key Components:
- configure_logging(): JSON pipeline with level filtering
- Timestamp, level and field-length processors
- get_logger() helper function

Dependencies: structlog, logging, datetime
Author: Webhook Relay Team
"""

import logging

import structlog
from datetime import datetime, timezone

from config.settings import settings

# Error texts and response bodies longer than this are cut in log records
MAX_FIELD_LENGTH = 500


def _add_timestamp(logger, method_name, event_dict):
    """Add an ISO 8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    event_dict["level"] = method_name.upper()
    return event_dict


def _truncate_long_fields(logger, method_name, event_dict):
    """
    Cut oversized string fields.

    Destinations may answer with whole HTML pages and network errors can
    embed the request; neither belongs in a log line in full.
    """
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_FIELD_LENGTH:
            event_dict[key] = value[:MAX_FIELD_LENGTH] + "...[truncated]"
    return event_dict


def configure_logging(log_level: str) -> None:
    """
    Configure structlog for JSON output.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            _add_timestamp,
            _add_log_level,
            _truncate_long_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        # Drop records below the configured level before they are rendered
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        cache_logger_on_first_use=True,
    )


configure_logging(settings.log_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger that tags every record with the emitting module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger("dispatch_queue.manager")
        >>> logger.info("Dispatch deferred", destination_id="https://hooks.example.com/a", wait_seconds=8.0)
        {"module": "dispatch_queue.manager", "destination_id": "https://hooks.example.com/a", "wait_seconds": 8.0, "event": "Dispatch deferred", "timestamp": "2024-01-15T10:30:00Z", "level": "INFO"}
    """
    return structlog.get_logger(name, module=name)
