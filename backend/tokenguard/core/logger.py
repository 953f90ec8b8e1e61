"""JSON logging for the session engine.

Lifecycle transitions are logged as dotted event names (``session.issued``,
``session.rotated``, ``session.reuse_detected``...) carrying a fixed set of
structured fields. Raw refresh tokens and their digests are never among them.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, Final, TextIO
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
INCOMING_ID_HEADERS: Final[tuple[str, ...]] = ("X-Request-ID", "X-Correlation-ID")

# Only these fields travel with an event.
EVENT_FIELDS: Final[frozenset[str]] = frozenset(
    {"owner_id", "session_id", "revoked_count", "attempt"}
)


class JSONFormatter(logging.Formatter):
    """Render one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event is not None:
            payload["event"] = event
            for name in sorted(EVENT_FIELDS):
                if hasattr(record, name):
                    payload[name] = getattr(record, name)
        request_id = getattr(record, "request_id", None)
        if request_id is not None:
            payload["request_id"] = request_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestContextFilter(logging.Filter):
    """Stamp records emitted while serving a request with its correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id()
        return True


class _EngineHandler(logging.StreamHandler):
    """Marker type so :func:`configure_logging` only replaces its own handler."""


def current_request_id() -> str | None:
    """Return the correlation id of the active request, or ``None`` outside one.

    An incoming ``X-Request-ID`` / ``X-Correlation-ID`` header is reused;
    otherwise a new id is generated once per request.
    """
    if not has_request_context():
        return None
    if "request_id" not in g:
        incoming = next(
            (request.headers[h] for h in INCOMING_ID_HEADERS if request.headers.get(h)),
            None,
        )
        g.request_id = incoming or uuid4().hex
    return g.request_id


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """Emit ``event`` with its structured fields.

    Fields outside :data:`EVENT_FIELDS` are dropped, so a stray
    ``refresh_token=`` keyword never reaches a log sink.

    :param logger: Module logger to emit on.
    :param event: Dotted event name, also used as the message.
    :param level: Logging level (``INFO`` by default).
    :param exc_info: Attach the active exception traceback.
    """
    extra = {name: value for name, value in fields.items() if name in EVENT_FIELDS}
    logger.log(level, event, extra={"event": event, **extra}, exc_info=exc_info)


def configure_logging(level: str | int = "INFO", *, stream: TextIO | None = None) -> None:
    """Send root logging to ``stream`` (stdout by default) as JSON lines.

    Calling it again replaces the handler installed by a previous call and
    leaves any other handler alone.
    """
    root = logging.getLogger()
    for handler in [h for h in root.handlers if isinstance(h, _EngineHandler)]:
        root.removeHandler(handler)

    handler = _EngineHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Echo the correlation id on every response."""

    app.logger.addFilter(RequestContextFilter())

    @app.after_request
    def _echo_request_id(response):
        request_id = current_request_id()
        if request_id is not None:
            response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response


__all__ = [
    "EVENT_FIELDS",
    "JSONFormatter",
    "RequestContextFilter",
    "configure_logging",
    "current_request_id",
    "init_app",
    "log_event",
]
