"""
middleware/correlation_id.py — Per-request correlation ids.

Each request gets an id, taken from the inbound X-Correlation-ID header when
the client supplies a sane one, otherwise a fresh uuid4 hex. It is stored on
flask.g (picked up by the logging filter) and echoed in the response header.
"""

from __future__ import annotations

import logging
import re
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

HEADER_NAME = "X-Correlation-ID"

_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _incoming_or_new() -> str:
    incoming = request.headers.get(HEADER_NAME, "")
    if _VALID_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


def register_correlation_id(app: Flask) -> None:

    @app.before_request
    def assign_correlation_id():
        g.correlation_id = _incoming_or_new()
        logger.debug("%s %s - request started", request.method, request.path)

    @app.after_request
    def echo_correlation_id(response):
        correlation_id = getattr(g, "correlation_id", None)
        if correlation_id is not None:
            response.headers[HEADER_NAME] = correlation_id
        logger.debug(
            "%s %s - response status %s",
            request.method,
            request.path,
            response.status_code,
        )
        return response
