"""Refresh session repository (relational session store)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import false, select, update

from tokenguard.models.refresh_session import RefreshSession
from tokenguard.repositories.base import BaseRepository, store_errors
from tokenguard.services._shared.errors import SessionStoreError
from tokenguard.services._shared.ports.session_store import RefreshSessionView


class RefreshSessionRepository(BaseRepository[RefreshSession]):
    """Persistence-only repository for :class:`RefreshSession`.

    Implements :class:`~tokenguard.services._shared.ports.SessionRepository`.
    Reads return immutable :class:`RefreshSessionView` snapshots; revocations
    are single conditional ``UPDATE`` statements so the database decides which
    concurrent caller wins.
    """

    model = RefreshSession

    @store_errors
    def create(self, *, owner_id: str, token_hash: str, expires_at: datetime) -> str:
        """Insert a non-revoked session and return its id.

        :raises SessionStoreError: On a value the table cannot hold, a constraint
            violation (duplicate hash) or driver failure.
        """
        try:
            entity = RefreshSession(owner_id=owner_id, token_hash=token_hash, expires_at=expires_at)
        except ValueError as exc:
            raise SessionStoreError(str(exc)) from exc
        row = self.add(entity)
        return row.id

    @store_errors
    def find_by_hash(
        self, token_hash: str, *, for_update: bool = False
    ) -> RefreshSessionView | None:
        """Look up a session by digest; ``for_update`` locks the row until commit."""
        stmt = select(RefreshSession).where(RefreshSession.token_hash == token_hash)
        if for_update:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        row = self.session.execute(stmt).scalars().first()
        return row.to_view() if row is not None else None

    @store_errors
    def revoke(self, session_id: str) -> None:
        self.revoke_if_active(session_id)

    @store_errors
    def revoke_if_active(self, session_id: str) -> bool:
        """Compare-and-swap on ``is_revoked``; ``True`` only if this call flipped it."""
        stmt = (
            update(RefreshSession)
            .where(RefreshSession.id == session_id, RefreshSession.is_revoked == false())
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    @store_errors
    def revoke_all_for_owner(self, owner_id: str) -> int:
        stmt = (
            update(RefreshSession)
            .where(RefreshSession.owner_id == owner_id, RefreshSession.is_revoked == false())
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    @store_errors
    def list_for_owner(self, owner_id: str) -> list[RefreshSessionView]:
        stmt = (
            select(RefreshSession)
            .where(RefreshSession.owner_id == owner_id)
            .order_by(RefreshSession.created_at.asc(), RefreshSession.id.asc())
            .execution_options(populate_existing=True)
        )
        return [row.to_view() for row in self.session.execute(stmt).scalars()]
