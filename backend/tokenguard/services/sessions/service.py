# tokenguard/services/sessions/service.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from tokenguard.core.logger import log_event
from tokenguard.services._shared.base import BaseService, UowFactory
from tokenguard.services._shared.errors import (
    ExpiredSessionError,
    InvalidSessionError,
    ReuseDetectedError,
    RotationFailedError,
    SessionRejectedError,
    SessionStoreError,
    SigningError,
    StaleSessionError,
)
from tokenguard.services._shared.ports.session_store import (
    RefreshSessionView,
    SessionUnitOfWork,
)
from tokenguard.services._shared.ports.token_issuer import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    TokenIssuer,
)
from tokenguard.services.sessions.dto import (
    IssueIn,
    RefreshIn,
    RevokeIn,
    SessionTokenConfig,
    TokenPairOut,
)
from tokenguard.services.sessions.hashing import TokenHasher, hash_token

log = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a presented refresh token as seen by the rotation engine."""

    UNKNOWN = "unknown"
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


def classify(view: RefreshSessionView | None, now: datetime) -> SessionState:
    """
    Map a stored session (or its absence) to a :class:`SessionState`.

    Revocation wins over expiry: a consumed token is a reuse signal even
    after it has expired.
    """
    if view is None:
        return SessionState.UNKNOWN
    if view.is_revoked:
        return SessionState.REVOKED
    if view.expires_at <= now:
        return SessionState.EXPIRED
    return SessionState.ACTIVE


class SessionService(BaseService):
    """
    Refresh session lifecycle: issue, rotate with reuse detection, revoke.

    Raw refresh tokens are never stored or logged; only their digest is used
    as the lookup key. The session store is the single source of truth, no
    session state is cached in-process.
    """

    def __init__(
        self,
        *,
        token_issuer: TokenIssuer,
        uow_factory: UowFactory,
        token_cfg: SessionTokenConfig | None = None,
        hasher: TokenHasher = hash_token,
        clock: Callable[[], datetime] | None = None,
        max_attempts: int = 3,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_issuer: Adapter minting and verifying signed tokens.
        :param uow_factory: Factory of session-store units of work.
        :param token_cfg: Access/refresh lifetimes (15 minutes / 7 days by default).
        :param hasher: Digest applied to raw refresh tokens. The relational
            store keeps digests of up to 128 characters and owner ids of up to
            255; longer values fail with :class:`SessionStoreError`.
        :param clock: Source of aware UTC "now".
        :param max_attempts: Rotation attempts when an optimistic store reports
            a concurrent modification.
        """
        super().__init__(uow_factory=uow_factory)
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.tokens = token_issuer
        self.cfg = token_cfg or SessionTokenConfig()
        self._hasher = hasher
        self._clock = clock or (lambda: datetime.now(UTC))
        self.max_attempts = max_attempts

    def now_utc(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue_session_pair(self, dto: IssueIn) -> TokenPairOut:
        """
        Start a new session for an already-authenticated principal.

        Tokens are signed before anything is written, so a signing failure
        leaves no session behind.

        :raises SigningError: If the issuer fails.
        :raises SessionStoreError: If the session cannot be persisted.
        """
        if not dto.owner_id:
            raise ValueError("owner_id must be a non-empty string.")
        now = self.now_utc()
        pair = self._mint_pair(dto.owner_id)
        with self.rw_uow() as uow:
            session_id = uow.sessions.create(
                owner_id=dto.owner_id,
                token_hash=self._hasher(pair.refresh_token),
                expires_at=now + self.cfg.refresh_expires,
            )
        log_event(log, "session.issued", owner_id=dto.owner_id, session_id=session_id)
        return pair

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, dto: RefreshIn) -> TokenPairOut:
        """
        Exchange an active refresh token for a new access/refresh pair.

        The presented session is revoked and its successor created in one unit
        of work. Presenting a token that was already consumed revokes every
        session of its owner.

        :raises InvalidSessionError: No session matches the token.
        :raises ExpiredSessionError: The session expired naturally (nothing revoked).
        :raises ReuseDetectedError: The token was already consumed; all of the
            owner's sessions are now revoked.
        :raises RotationFailedError: Signing or storage failed; nothing committed.
        """
        token_hash = self._hasher(dto.refresh_token)
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._rotate_once(token_hash)
            except StaleSessionError as exc:
                if attempt == self.max_attempts:
                    log_event(
                        log,
                        "session.rotation_failed",
                        level=logging.ERROR,
                        attempt=attempt,
                    )
                    raise RotationFailedError() from exc
                log_event(log, "session.rotation_retry", level=logging.DEBUG, attempt=attempt)
        raise AssertionError("unreachable")  # pragma: no cover

    def _rotate_once(self, token_hash: str) -> TokenPairOut:
        now = self.now_utc()
        try:
            with self.rw_uow() as uow:
                current = uow.sessions.find_by_hash(token_hash, for_update=True)
                state = classify(current, now)

                if current is None:
                    log_event(log, "session.rejected")
                    raise InvalidSessionError()

                if state is SessionState.REVOKED:
                    self._revoke_family(uow, current)

                if state is SessionState.EXPIRED:
                    log_event(
                        log, "session.expired", owner_id=current.owner_id, session_id=current.id
                    )
                    raise ExpiredSessionError()

                if not uow.sessions.revoke_if_active(current.id):
                    # A concurrent rotation consumed this record first.
                    self._revoke_family(uow, current)

                pair = self._mint_pair(current.owner_id)
                new_id = uow.sessions.create(
                    owner_id=current.owner_id,
                    token_hash=self._hasher(pair.refresh_token),
                    expires_at=now + self.cfg.refresh_expires,
                )
        except (SessionRejectedError, StaleSessionError):
            raise
        except (SigningError, SessionStoreError) as exc:
            log_event(log, "session.rotation_failed", level=logging.ERROR, exc_info=True)
            raise RotationFailedError() from exc

        log_event(
            log,
            "session.rotated",
            owner_id=current.owner_id,
            session_id=new_id,
        )
        return pair

    def _revoke_family(self, uow: SessionUnitOfWork, current: RefreshSessionView) -> None:
        """Reuse response: revoke every session of the owner, commit, then reject."""
        count = uow.sessions.revoke_all_for_owner(current.owner_id)
        uow.commit()
        log_event(
            log,
            "session.reuse_detected",
            level=logging.WARNING,
            owner_id=current.owner_id,
            session_id=current.id,
            revoked_count=count,
        )
        raise ReuseDetectedError(current.owner_id, count)

    # ------------------------------------------------------------------ #
    # Revocation & queries
    # ------------------------------------------------------------------ #

    def revoke_session(self, dto: RevokeIn) -> bool:
        """
        Revoke the session of a refresh token (logout).

        Idempotent: revoking an already-revoked or unknown token succeeds.

        :returns: ``True`` if a matching session exists, ``False`` otherwise.
        :raises SessionStoreError: If the store fails.
        """
        token_hash = self._hasher(dto.refresh_token)
        with self.rw_uow() as uow:
            current = uow.sessions.find_by_hash(token_hash, for_update=True)
            if current is None:
                return False
            uow.sessions.revoke(current.id)
        log_event(log, "session.revoked", owner_id=current.owner_id, session_id=current.id)
        return True

    def revoke_all_sessions(self, owner_id: str) -> int:
        """
        Revoke every session of ``owner_id`` (administrative kill switch).

        :returns: Number of sessions newly revoked.
        """
        with self.rw_uow() as uow:
            count = uow.sessions.revoke_all_for_owner(owner_id)
        log_event(log, "session.revoked_all", owner_id=owner_id, revoked_count=count)
        return count

    def list_sessions(self, owner_id: str) -> list[RefreshSessionView]:
        """Return every session of ``owner_id``, oldest first."""
        with self.rw_uow() as uow:
            return uow.sessions.list_for_owner(owner_id)

    def authenticate(self, access_token: str) -> str:
        """
        Verify an access token and return its owner id.

        :raises InvalidTokenError: On any verification failure.
        """
        return self.tokens.verify(access_token, expected_type=ACCESS_TOKEN_TYPE)

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _mint_pair(self, owner_id: str) -> TokenPairOut:
        access = self.tokens.issue(
            owner_id, self.cfg.access_expires, token_type=ACCESS_TOKEN_TYPE
        )
        refresh = self.tokens.issue(
            owner_id, self.cfg.refresh_expires, token_type=REFRESH_TOKEN_TYPE
        )
        return TokenPairOut(access_token=access, refresh_token=refresh)
