# tokenguard/services/_shared/base.py
from __future__ import annotations

from collections.abc import Callable

from tokenguard.core import errors as api_errors
from tokenguard.services._shared.errors import (
    AuthenticationError,
    RotationFailedError,
    ServiceError,
    SessionStoreError,
    SigningError,
)
from tokenguard.services._shared.ports.session_store import SessionUnitOfWork

UowFactory = Callable[[], SessionUnitOfWork]


class BaseService:
    """
    Common plumbing for services that talk to the session store.

    Responsibilities
    ----------------
    * Provide a helper to open read-write units of work.
    * Centralize error translation.

    Notes
    -----
    Services never touch a global session; every store access goes through a
    unit of work produced by the injected factory.
    """

    def __init__(self, *, uow_factory: UowFactory) -> None:
        """
        Keep the unit-of-work factory.

        :param uow_factory: Zero-argument callable returning a fresh unit of work
            (e.g. ``SQLAlchemyUnitOfWork`` or an ``InMemorySessionStore``).
        """
        self._uow_factory = uow_factory

    def rw_uow(self) -> SessionUnitOfWork:
        """
        Open a unit of work on the session store.

        :returns: Fresh unit of work; use it as a context manager.
        """
        return self._uow_factory()

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors.

        Every credential rejection collapses into the same 401 so that clients
        cannot distinguish unknown, expired, revoked and reused tokens.

        :param exc: Exception raised within the service.
        :returns: Translated exception ready to be re-raised.
        """
        if isinstance(exc, AuthenticationError):
            # -> 401 Unauthorized
            return api_errors.Unauthorized()

        if isinstance(exc, (SigningError, SessionStoreError, RotationFailedError)):
            # -> 500, cause stays in the server logs only
            return api_errors.InternalError()

        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        # not ours: the generic 500 handler renders it
        return exc
