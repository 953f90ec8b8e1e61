from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from tokenguard.services._shared.errors import SessionStoreError
from tokenguard.uow.base import UnitOfWork


@dataclass(frozen=True, slots=True)
class RefreshSessionView:
    """
    Read-model for a refresh session.

    :ivar id: Session identifier (UUID string).
    :ivar owner_id: Principal owning the session.
    :ivar token_hash: Digest of the raw refresh token.
    :ivar is_revoked: Monotonic revocation flag.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar created_at: Creation timestamp (UTC).
    """

    id: str
    owner_id: str
    token_hash: str
    is_revoked: bool
    expires_at: datetime
    created_at: datetime


class SessionRepository(Protocol):
    """
    Transaction-bound access to refresh session records.

    Every call participates in the unit of work that produced the repository;
    nothing is visible to other transactions before ``commit()``.
    """

    def create(self, *, owner_id: str, token_hash: str, expires_at: datetime) -> str:
        """Insert a new, non-revoked session. :returns: The new session id."""

    def find_by_hash(
        self, token_hash: str, *, for_update: bool = False
    ) -> RefreshSessionView | None:
        """Look a session up by token digest, optionally locking it for the transaction."""

    def revoke(self, session_id: str) -> None:
        """Mark a session revoked. Idempotent; unknown ids are ignored."""

    def revoke_if_active(self, session_id: str) -> bool:
        """Flip ``is_revoked`` false -> true. :returns: ``True`` only for the caller that flipped it."""

    def revoke_all_for_owner(self, owner_id: str) -> int:
        """Revoke every session of ``owner_id``. :returns: Number of rows newly revoked."""

    def list_for_owner(self, owner_id: str) -> list[RefreshSessionView]:
        """Return every session of ``owner_id`` ordered by creation time."""


class SessionUnitOfWork(Protocol):
    """Transactional scope exposing ``sessions``; commits on clean exit, rolls back on error."""

    sessions: SessionRepository

    def __enter__(self) -> SessionUnitOfWork: ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


# --------------------------------------------------------------------------- #
# In-memory adapter (tests, single-process tooling)
# --------------------------------------------------------------------------- #


class _InMemorySessionRepository:
    """Repository view over a store plus the writes staged by one unit of work."""

    def __init__(self, uow: _InMemoryUnitOfWork) -> None:
        self._uow = uow

    def _current(self, session_id: str) -> RefreshSessionView | None:
        staged = self._uow.staged.get(session_id)
        if staged is not None:
            return staged
        return self._uow.store._rows.get(session_id)

    def create(self, *, owner_id: str, token_hash: str, expires_at: datetime) -> str:
        if self.find_by_hash(token_hash) is not None:
            raise SessionStoreError("Duplicate token hash")
        session_id = str(uuid4())
        self._uow.staged[session_id] = RefreshSessionView(
            id=session_id,
            owner_id=owner_id,
            token_hash=token_hash,
            is_revoked=False,
            expires_at=expires_at,
            created_at=self._uow.store.clock(),
        )
        return session_id

    def find_by_hash(
        self, token_hash: str, *, for_update: bool = False
    ) -> RefreshSessionView | None:
        # The unit of work already holds the store lock, so for_update is implied.
        for view in self._uow.staged.values():
            if view.token_hash == token_hash:
                return view
        session_id = self._uow.store._by_hash.get(token_hash)
        return self._current(session_id) if session_id else None

    def revoke(self, session_id: str) -> None:
        self.revoke_if_active(session_id)

    def revoke_if_active(self, session_id: str) -> bool:
        view = self._current(session_id)
        if view is None or view.is_revoked:
            return False
        self._uow.staged[session_id] = replace(view, is_revoked=True)
        return True

    def revoke_all_for_owner(self, owner_id: str) -> int:
        count = 0
        for view in self.list_for_owner(owner_id):
            if self.revoke_if_active(view.id):
                count += 1
        return count

    def list_for_owner(self, owner_id: str) -> list[RefreshSessionView]:
        merged = dict(self._uow.store._rows)
        merged.update(self._uow.staged)
        rows = [v for v in merged.values() if v.owner_id == owner_id]
        return sorted(rows, key=lambda v: (v.created_at, v.id))


class _InMemoryUnitOfWork(UnitOfWork):
    """
    Single-writer transaction over :class:`InMemorySessionStore`.

    The store lock is held from ``__enter__`` until :meth:`close`, so
    concurrent units of work are fully serialized. Writes are staged and only
    applied on ``commit()``.
    """

    def __init__(self, store: InMemorySessionStore) -> None:
        self.store = store
        self.staged: dict[str, RefreshSessionView] = {}
        self.sessions = _InMemorySessionRepository(self)

    def __enter__(self) -> _InMemoryUnitOfWork:
        self.store._lock.acquire()
        self.staged.clear()
        return self

    def close(self) -> None:
        self.store._lock.release()

    def commit(self) -> None:
        for session_id, view in self.staged.items():
            self.store._rows[session_id] = view
            self.store._by_hash[view.token_hash] = session_id
        self.staged.clear()

    def rollback(self) -> None:
        self.staged.clear()


class InMemorySessionStore:
    """
    In-memory refresh session store.

    Calling the store returns a fresh unit of work, so the instance itself can
    be passed wherever a ``uow_factory`` is expected.

    .. note::
       Uses a re-entrant lock held for the whole transaction to give the same
       serializable behaviour a ``SELECT ... FOR UPDATE`` gives in SQL.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._rows: dict[str, RefreshSessionView] = {}
        self._by_hash: dict[str, str] = {}
        self._lock = threading.RLock()
        self.clock = clock or (lambda: datetime.now(UTC))

    def __call__(self) -> _InMemoryUnitOfWork:
        return _InMemoryUnitOfWork(self)

    def get(self, session_id: str) -> RefreshSessionView | None:
        """Committed snapshot of one session (test helper)."""
        with self._lock:
            return self._rows.get(session_id)

    def all(self) -> list[RefreshSessionView]:
        """Committed snapshot of every session, oldest first."""
        with self._lock:
            return sorted(self._rows.values(), key=lambda v: (v.created_at, v.id))
