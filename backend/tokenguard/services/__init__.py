"""Service layer public API.

Re-exports
----------
- :class:`BaseService` (from ``tokenguard.services._shared.base``)
- Error taxonomy (from ``tokenguard.services._shared.errors``)

The session lifecycle service itself lives in :mod:`tokenguard.services.sessions`.
"""

from __future__ import annotations

from ._shared.base import BaseService
from ._shared.errors import (
    AuthenticationError,
    ExpiredSessionError,
    InvalidSessionError,
    InvalidTokenError,
    ReuseDetectedError,
    RotationError,
    RotationFailedError,
    ServiceError,
    SessionRejectedError,
    SessionStoreError,
    SigningError,
    StaleSessionError,
)

__all__ = [
    "AuthenticationError",
    "BaseService",
    "ExpiredSessionError",
    "InvalidSessionError",
    "InvalidTokenError",
    "ReuseDetectedError",
    "RotationError",
    "RotationFailedError",
    "ServiceError",
    "SessionRejectedError",
    "SessionStoreError",
    "SigningError",
    "StaleSessionError",
]
