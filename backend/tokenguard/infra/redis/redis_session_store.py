# tokenguard/infra/redis/redis_session_store.py
from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError, WatchError  # type: ignore[import-untyped]

from tokenguard.services._shared.errors import SessionStoreError, StaleSessionError
from tokenguard.services._shared.ports import RefreshSessionView
from tokenguard.uow.base import UnitOfWork


def _s(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class _RedisSessionRepository:
    """Reads under ``WATCH``; writes are staged on the unit of work."""

    def __init__(self, uow: RedisUnitOfWork) -> None:
        self._uow = uow

    # -------------------- helpers --------------------

    def _load(self, session_id: str) -> RefreshSessionView | None:
        staged = self._uow.staged.get(session_id)
        if staged is not None:
            return staged
        key = self._uow.store.session_key(session_id)
        self._uow.watch(key)
        raw = self._uow.read("hgetall", key)
        if not raw:
            return None
        h = {_s(k): _s(v) for k, v in raw.items()}
        return RefreshSessionView(
            id=session_id,
            owner_id=h["owner_id"],
            token_hash=h["token_hash"],
            is_revoked=h["is_revoked"] == "1",
            expires_at=datetime.fromisoformat(h["expires_at"]),
            created_at=datetime.fromisoformat(h["created_at"]),
        )

    # -------------------- API ------------------------

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
        self._uow.created.add(session_id)
        return session_id

    def find_by_hash(
        self, token_hash: str, *, for_update: bool = False
    ) -> RefreshSessionView | None:
        # Every read is watched, so for_update needs no extra work here.
        for view in self._uow.staged.values():
            if view.token_hash == token_hash:
                return view
        key = self._uow.store.hash_key(token_hash)
        self._uow.watch(key)
        session_id = self._uow.read("get", key)
        return self._load(_s(session_id)) if session_id is not None else None

    def revoke(self, session_id: str) -> None:
        self.revoke_if_active(session_id)

    def revoke_if_active(self, session_id: str) -> bool:
        view = self._load(session_id)
        if view is None or view.is_revoked:
            return False
        self._uow.staged[session_id] = replace(view, is_revoked=True)
        return True

    def revoke_all_for_owner(self, owner_id: str) -> int:
        return sum(1 for v in self.list_for_owner(owner_id) if self.revoke_if_active(v.id))

    def list_for_owner(self, owner_id: str) -> list[RefreshSessionView]:
        store = self._uow.store
        key = store.owner_key(owner_id)
        self._uow.watch(key)
        # Entries past their purge time point at keys Redis already dropped.
        floor = store.clock().timestamp() if store.retention is not None else "-inf"
        ids = {_s(m) for m in self._uow.read("zrangebyscore", key, floor, "+inf")}
        ids.update(sid for sid, v in self._uow.staged.items() if v.owner_id == owner_id)
        views = [v for v in (self._load(sid) for sid in ids) if v is not None]
        return sorted(views, key=lambda v: (v.created_at, v.id))


class RedisUnitOfWork(UnitOfWork):
    """
    Optimistic transaction over :class:`RedisSessionStore`.

    Every key read is ``WATCH``ed; staged writes are sent in one
    ``MULTI``/``EXEC`` on commit. If any watched key changed in between, the
    commit raises :class:`StaleSessionError` and nothing is written.
    """

    def __init__(self, store: RedisSessionStore) -> None:
        self.store = store
        self.pipe = store.r.pipeline(transaction=True)
        self.staged: dict[str, RefreshSessionView] = {}
        self.created: set[str] = set()
        self.sessions = _RedisSessionRepository(self)

    def watch(self, *keys: str) -> None:
        try:
            self.pipe.watch(*keys)
        except RedisError as exc:
            raise SessionStoreError("watch failed") from exc

    def read(self, command: str, *args: Any) -> Any:
        """Run a read command immediately (the pipeline is in watch mode)."""
        try:
            return getattr(self.pipe, command)(*args)
        except RedisError as exc:
            raise SessionStoreError(f"{command} failed") from exc

    def close(self) -> None:
        self.pipe.reset()

    def commit(self) -> None:
        if not self.staged:
            self.pipe.reset()
            return
        try:
            self.pipe.multi()
            for session_id, view in self.staged.items():
                self._queue_write(session_id, view)
            self.pipe.execute()
        except WatchError as exc:
            raise StaleSessionError() from exc
        except RedisError as exc:
            raise SessionStoreError("commit failed") from exc
        finally:
            self.staged.clear()
            self.created.clear()

    def _queue_write(self, session_id: str, view: RefreshSessionView) -> None:
        s_key = self.store.session_key(session_id)
        self.pipe.hset(
            s_key,
            mapping={
                "owner_id": view.owner_id,
                "token_hash": view.token_hash,
                "is_revoked": "1" if view.is_revoked else "0",
                "expires_at": view.expires_at.isoformat(),
                "created_at": view.created_at.isoformat(),
            },
        )
        if session_id not in self.created:
            return
        h_key = self.store.hash_key(view.token_hash)
        o_key = self.store.owner_key(view.owner_id)
        self.pipe.set(h_key, session_id)
        if self.store.retention is None:
            self.pipe.zadd(o_key, {session_id: view.expires_at.timestamp()})
            return
        purge_at = view.expires_at + self.store.retention
        self.pipe.zadd(o_key, {session_id: purge_at.timestamp()})
        self.pipe.zremrangebyscore(o_key, "-inf", self.store.clock().timestamp())
        self.pipe.expireat(s_key, purge_at)
        self.pipe.expireat(h_key, purge_at)

    def rollback(self) -> None:
        self.staged.clear()
        self.created.clear()
        self.pipe.reset()


class RedisSessionStore:
    """
    Redis-backed refresh session store.

    Layout (``prefix`` defaults to ``rs``)::

        rs:s:{id}     hash   owner_id, token_hash, is_revoked, expires_at, created_at
        rs:h:{digest} string session id
        rs:o:{owner}  zset   session ids of the owner, scored by purge time

    Calling the store returns a fresh :class:`RedisUnitOfWork`.

    :param r: A Redis client (already connected).
    :param retention: When set, session keys are purged this long after
        ``expires_at``, and each new session of an owner drops purged ids from
        the owner index. By default nothing is ever deleted.
    """

    def __init__(
        self,
        r: redis.Redis,
        *,
        prefix: str = "rs",
        retention: timedelta | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.r = r
        self.prefix = prefix
        self.retention = retention
        self.clock = clock or (lambda: datetime.now(UTC))

    def __call__(self) -> RedisUnitOfWork:
        return RedisUnitOfWork(self)

    def session_key(self, session_id: str) -> str:
        return f"{self.prefix}:s:{session_id}"

    def hash_key(self, token_hash: str) -> str:
        return f"{self.prefix}:h:{token_hash}"

    def owner_key(self, owner_id: str) -> str:
        return f"{self.prefix}:o:{owner_id}"
