"""
tokenguard.services._shared.ports
=================================

*Ports* (hexagonal interfaces) that define the contracts the session
lifecycle engine depends on.

Modules
-------
- :mod:`token_issuer`:
    Defines :class:`~.TokenIssuer`, the abstraction over signing and verifying
    access/refresh tokens, plus the :class:`~.StubTokenIssuer` test double.

- :mod:`session_store`:
    Defines :class:`~.SessionRepository`, :class:`~.SessionUnitOfWork` and
    :class:`~.RefreshSessionView`, plus the :class:`~.InMemorySessionStore`
    adapter.

Concrete adapters (SQLAlchemy, Redis, PyJWT) live under ``tokenguard.uow``
and ``tokenguard.infra``.
"""

from __future__ import annotations

from .session_store import (
    InMemorySessionStore,
    RefreshSessionView,
    SessionRepository,
    SessionUnitOfWork,
)
from .token_issuer import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    StubTokenIssuer,
    TokenIssuer,
)

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "InMemorySessionStore",
    "RefreshSessionView",
    "SessionRepository",
    "SessionUnitOfWork",
    "StubTokenIssuer",
    "TokenIssuer",
]
