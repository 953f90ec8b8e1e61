"""RFC 7807 rendering for applications that embed the session engine.

Services raise :mod:`tokenguard.services._shared.errors`;
``BaseService.translate_exceptions`` turns them into the :class:`APIError`
subclasses below, and :func:`init_app` renders those (and anything else that
escapes a view) as ``application/problem+json``.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, has_request_context, jsonify, request
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from tokenguard.core.logger import current_request_id

log = logging.getLogger(__name__)

# Shared by every rejected credential: unknown, expired, revoked and reused
# tokens must be indistinguishable to the caller.
REAUTHENTICATE_MESSAGE = "Session is no longer valid. Please sign in again."


def status_code_name(status: int) -> str:
    """``404`` -> ``"not_found"``; unknown codes map to ``"error"``."""
    try:
        return HTTPStatus(status).phrase.lower().replace(" ", "_").replace("-", "_")
    except ValueError:
        return "error"


def problem(status: int, detail: str, *, code: str | None = None) -> dict[str, Any]:
    """Build a Problem Details body for ``status``.

    :param status: HTTP status code.
    :param detail: Client-safe description.
    :param code: Stable machine code; derived from ``status`` when omitted.
    """
    return {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": detail,
        "instance": request.path if has_request_context() else None,
        "code": code or status_code_name(status),
        "request_id": current_request_id(),
    }


class APIError(Exception):
    """
    An error with a fixed HTTP status and client-safe message.

    Parameters
    ----------
    message : str
        Text shown to the client.
    status_code : int, optional
        Defaults to ``400``.
    code : str, optional
        Stable machine code. Defaults to ``"bad_request"``.
    """

    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.BAD_REQUEST,
        code: str = "bad_request",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code

    def to_problem(self) -> dict[str, Any]:
        return problem(self.status_code, self.message, code=self.code)


class Unauthorized(APIError):
    """Credential rejected; the caller has to authenticate again."""

    def __init__(self, message: str = REAUTHENTICATE_MESSAGE) -> None:
        super().__init__(message, HTTPStatus.UNAUTHORIZED, "unauthorized")


class InternalError(APIError):
    """Signing or storage failed. The cause stays in the server log."""

    def __init__(self, message: str = "Unexpected error") -> None:
        super().__init__(message, HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error")


def _respond(body: dict[str, Any]) -> tuple[Response, int]:
    resp = jsonify(body)
    resp.mimetype = "application/problem+json"
    return resp, body["status"]


def init_app(app: Flask) -> None:
    """Register the problem+json handlers on ``app``.

    4xx are logged as warnings, 5xx as errors with the traceback attached.
    """

    @app.errorhandler(APIError)
    def _api_error(err: APIError):
        body = err.to_problem()
        level = logging.ERROR if err.status_code >= 500 else logging.WARNING
        log.log(level, "api error %s (%s)", err.code, err.status_code)
        return _respond(body)

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        status = err.code or HTTPStatus.INTERNAL_SERVER_ERROR
        body = problem(status, err.description or HTTPStatus(status).phrase)
        log.log(logging.ERROR if status >= 500 else logging.WARNING, "http error %s", status)
        return _respond(body)

    @app.errorhandler(OperationalError)
    def _store_unavailable(err: OperationalError):
        log.error("database unavailable", exc_info=err)
        return _respond(problem(HTTPStatus.SERVICE_UNAVAILABLE, "Service temporarily unavailable"))

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        log.error("unhandled exception", exc_info=err)
        return _respond(problem(HTTPStatus.INTERNAL_SERVER_ERROR, "Unexpected error"))
