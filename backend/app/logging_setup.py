"""
logging_setup.py — stdlib logging configuration for the app factory.

Every record carries a `correlation_id` attribute: the current request's id
(set by middleware/correlation_id.py) or "-" outside a request. Audit events
from the auth services add an `event` attribute; it is rendered when present.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig

from flask import Flask, g, has_request_context


class CorrelationIdFilter(logging.Filter):

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = "-"
        if has_request_context():
            correlation_id = getattr(g, "correlation_id", "-")
        record.correlation_id = correlation_id
        if not hasattr(record, "event"):
            record.event = "-"
        return True


def configure_logging(app: Flask) -> None:
    """Installs the root handler once; level comes from LOG_LEVEL."""
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation_id": {"()": CorrelationIdFilter},
        },
        "formatters": {
            "default": {
                "format": (
                    "%(asctime)s %(levelname)s [%(correlation_id)s] "
                    "%(name)s: %(message)s event=%(event)s"
                ),
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["correlation_id"],
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    })
    app.logger.setLevel(level)
