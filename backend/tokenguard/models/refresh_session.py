"""Refresh session model: one row per refresh token ever issued."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, UniqueConstraint, false, inspect
from sqlalchemy.orm import Mapped, mapped_column, validates

from tokenguard.core.extensions import db
from tokenguard.services._shared.ports.session_store import RefreshSessionView

from .base import CreatedAtMixin, ReprMixin, UUIDPKMixin, as_utc

OWNER_ID_MAX_LENGTH = 255
# Fits a SHA-512 hex digest.
TOKEN_HASH_MAX_LENGTH = 128


class RefreshSession(UUIDPKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    Server-side record of an issued refresh token.

    Fields
    ------
    id : str
        UUID4 string, generated at creation.
    owner_id : str
        Principal that owns the session, at most 255 characters. Indexed for
        bulk revocation.
    token_hash : str
        Digest of the raw refresh token (SHA-256 hex by default), at most 128
        characters and stored as given. The raw token is never stored.
    is_revoked : bool
        Monotonic flag; once ``True`` it can never return to ``False``.
    expires_at : datetime
        Absolute expiry (UTC).
    created_at : datetime
        Creation timestamp (from mixin).
    """

    __tablename__ = "refresh_sessions"

    owner_id: Mapped[str] = mapped_column(String(OWNER_ID_MAX_LENGTH), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(TOKEN_HASH_MAX_LENGTH), nullable=False)
    is_revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("token_hash", name="uq_refresh_sessions_token_hash"),
        Index("ix_refresh_sessions_owner_id", "owner_id"),
    )

    def _stored(self, key: str):
        # expired attributes are reloaded so the checks below see the row value
        if inspect(self).persistent:
            return getattr(self, key)
        return self.__dict__.get(key)

    @validates("owner_id")
    def _validate_owner_id(self, _key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("owner_id must be a non-empty string.")
        if len(value) > OWNER_ID_MAX_LENGTH:
            raise ValueError(f"owner_id must be at most {OWNER_ID_MAX_LENGTH} characters.")
        current = self._stored("owner_id")
        if current is not None and current != value:
            raise ValueError("owner_id is immutable.")
        return value

    @validates("token_hash")
    def _validate_token_hash(self, _key: str, value: str) -> str:
        if not isinstance(value, str) or not value:
            raise ValueError("token_hash must be a non-empty string.")
        if len(value) > TOKEN_HASH_MAX_LENGTH:
            raise ValueError(f"token_hash must be at most {TOKEN_HASH_MAX_LENGTH} characters.")
        return value

    @validates("is_revoked")
    def _validate_is_revoked(self, _key: str, value: bool) -> bool:
        # false -> true only
        if self._stored("is_revoked") is True and not value:
            raise ValueError("A revoked session cannot be reactivated.")
        return bool(value)

    def to_view(self) -> RefreshSessionView:
        """Return an immutable, backend-neutral snapshot of this row."""
        return RefreshSessionView(
            id=self.id,
            owner_id=self.owner_id,
            token_hash=self.token_hash,
            is_revoked=bool(self.is_revoked),
            expires_at=as_utc(self.expires_at),
            created_at=as_utc(self.created_at),
        )
