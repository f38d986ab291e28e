"""
Logging setup and per-request context.

Each request gets an id (the caller's X-Request-ID when it looks sane,
otherwise a fresh UUID4). The id is stamped on every log record emitted while
handling the request, echoed back in the X-Request-ID header and included in
error envelopes.
"""
from __future__ import annotations

import logging
import re
import sys
import time
import uuid

from flask import g, request, has_request_context

REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

access_logger = logging.getLogger("api.access")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = getattr(g, "request_id", "-")
        else:
            record.request_id = "-"
        return True


def configure_logging(app) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root = logging.getLogger()

    # one handler per process, even when create_app runs several times (tests)
    if not any(getattr(h, "_authkit", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdFilter())
        handler._authkit = True
        root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

    if not app.config.get("SQLALCHEMY_ECHO"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def init_request_context(app) -> None:
    @app.before_request
    def assign_request_id():
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        g.request_id = incoming if _SAFE_REQUEST_ID.match(incoming) else str(uuid.uuid4())
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        started = getattr(g, "request_started", None)
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        access_logger.info(
            "%s %s -> %s (%.1f ms)", request.method, request.path, response.status_code, duration_ms
        )
        return response
