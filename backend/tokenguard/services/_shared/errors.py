"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask, HTTP, or SQLAlchemy directly. They serve as stable contracts between
stores, token issuers and application services.

The translation to HTTP responses (RFC 7807) is handled by
``tokenguard/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer or BaseService translates them to ``APIError``.
    """

    default_message = "Service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class AuthenticationError(ServiceError):
    """
    The presented credential cannot be honoured; the caller must sign in again.

    Every subclass shares the same public message so that responses do not
    reveal *why* a token was rejected.
    """

    default_message = "Session is no longer valid. Please sign in again."


class RotationError(ServiceError):
    """Common base of everything :meth:`SessionService.rotate` raises."""


# --------------------------------------------------------------------------- #
# Credential rejections
# --------------------------------------------------------------------------- #


class InvalidTokenError(AuthenticationError):
    """Signature, structure, type or expiry check of a signed token failed."""


class SessionRejectedError(AuthenticationError, RotationError):
    """A refresh token was presented but its session does not permit rotation."""


class InvalidSessionError(SessionRejectedError):
    """No session matches the presented refresh token."""


class ExpiredSessionError(SessionRejectedError):
    """The session exists and is not revoked, but its expiry has passed."""


class ReuseDetectedError(SessionRejectedError):
    """
    An already-consumed refresh token was presented again.

    Raised after every session of the owner has been revoked.

    :param owner_id: Principal whose sessions were revoked.
    :param revoked_count: Number of sessions newly revoked by the response.
    """

    def __init__(self, owner_id: str, revoked_count: int = 0) -> None:
        super().__init__()
        self.owner_id = owner_id
        self.revoked_count = revoked_count


# --------------------------------------------------------------------------- #
# Infrastructure failures
# --------------------------------------------------------------------------- #


class SigningError(ServiceError):
    """The signing primitive failed to produce a token. Never retried."""

    default_message = "Unable to sign token"


class SessionStoreError(ServiceError):
    """The session store failed to read, write or commit."""

    default_message = "Session store failure"


class StaleSessionError(SessionStoreError):
    """An optimistic store detected a concurrent modification at commit time."""

    default_message = "Session was modified concurrently"


class RotationFailedError(RotationError):
    """
    Rotation of an active session aborted; no partial state was committed.

    The underlying :class:`SigningError` or :class:`SessionStoreError` is
    available as ``__cause__``.
    """

    default_message = "Unable to rotate session"
