"""SessionService against the relational store and the PyJWT issuer."""

from __future__ import annotations

import hashlib
from datetime import timedelta

import pytest
from tokenguard.infra.jwt.jwt_token_issuer import IssuerConfig, JWTTokenIssuer
from tokenguard.models import RefreshSession
from tokenguard.services._shared.errors import (
    ExpiredSessionError,
    InvalidSessionError,
    ReuseDetectedError,
)
from tokenguard.services.sessions.dto import IssueIn, RefreshIn, RevokeIn, SessionTokenConfig
from tokenguard.services.sessions.hashing import hash_token
from tokenguard.services.sessions.service import SessionService
from tokenguard.uow import SQLAlchemyUnitOfWork

from tests.factories.refresh_session import RefreshSessionFactory


@pytest.fixture()
def service(session) -> SessionService:
    issuer = JWTTokenIssuer(IssuerConfig(secret="sql-test-secret-with-enough-entropy"))
    return SessionService(token_issuer=issuer, uow_factory=SQLAlchemyUnitOfWork)


def _row(session, raw_token: str) -> RefreshSession:
    return session.query(RefreshSession).filter_by(token_hash=hash_token(raw_token)).one()


class TestSessionServiceSQL:
    def test_issue_persists_digest_only(self, service, session):
        pair = service.issue_session_pair(IssueIn(owner_id="alice"))

        row = _row(session, pair.refresh_token)
        assert row.owner_id == "alice"
        assert row.is_revoked is False
        assert pair.refresh_token not in {row.token_hash, row.id}
        assert service.authenticate(pair.access_token) == "alice"

    def test_rotate_revokes_old_and_creates_successor(self, service, session):
        t1 = service.issue_session_pair(IssueIn(owner_id="alice"))
        t2 = service.rotate(RefreshIn(refresh_token=t1.refresh_token))

        session.expire_all()
        assert _row(session, t1.refresh_token).is_revoked is True
        assert _row(session, t2.refresh_token).is_revoked is False
        assert len(service.list_sessions("alice")) == 2

    def test_replay_revokes_every_session_of_owner(self, service, session):
        t1 = service.issue_session_pair(IssueIn(owner_id="alice"))
        other = service.issue_session_pair(IssueIn(owner_id="alice"))
        bystander = service.issue_session_pair(IssueIn(owner_id="bob"))
        service.rotate(RefreshIn(refresh_token=t1.refresh_token))

        with pytest.raises(ReuseDetectedError) as excinfo:
            service.rotate(RefreshIn(refresh_token=t1.refresh_token))

        # the successor and the parallel session were still active
        assert excinfo.value.revoked_count == 2
        assert all(v.is_revoked for v in service.list_sessions("alice"))
        session.expire_all()
        assert _row(session, other.refresh_token).is_revoked is True
        assert _row(session, bystander.refresh_token).is_revoked is False

    def test_unknown_token_is_rejected(self, service):
        with pytest.raises(InvalidSessionError):
            service.rotate(RefreshIn(refresh_token="never-issued"))

    def test_expired_row_is_rejected_without_revocation(self, service, session):
        row = RefreshSessionFactory(
            raw_token="old-token",
            owner_id="carol",
            expires_at=service.now_utc() - timedelta(seconds=1),
        )
        session.commit()

        with pytest.raises(ExpiredSessionError):
            service.rotate(RefreshIn(refresh_token="old-token"))

        session.expire_all()
        assert session.get(RefreshSession, row.id).is_revoked is False

    def test_revoke_is_idempotent(self, service):
        pair = service.issue_session_pair(IssueIn(owner_id="dave"))

        assert service.revoke_session(RevokeIn(refresh_token=pair.refresh_token)) is True
        assert service.revoke_session(RevokeIn(refresh_token=pair.refresh_token)) is True
        assert service.revoke_session(RevokeIn(refresh_token="unknown")) is False
        with pytest.raises(ReuseDetectedError):
            service.rotate(RefreshIn(refresh_token=pair.refresh_token))

    def test_revoke_all_counts_only_active_sessions(self, service):
        first = service.issue_session_pair(IssueIn(owner_id="erin"))
        service.issue_session_pair(IssueIn(owner_id="erin"))
        service.revoke_session(RevokeIn(refresh_token=first.refresh_token))

        assert service.revoke_all_sessions("erin") == 1
        assert service.revoke_all_sessions("erin") == 0

    def test_refresh_expiry_follows_config(self, session):
        issuer = JWTTokenIssuer(IssuerConfig(secret="sql-test-secret-with-enough-entropy"))
        svc = SessionService(
            token_issuer=issuer,
            uow_factory=SQLAlchemyUnitOfWork,
            token_cfg=SessionTokenConfig(refresh_expires=timedelta(hours=1)),
        )
        before = svc.now_utc()
        pair = svc.issue_session_pair(IssueIn(owner_id="frank"))

        (view,) = svc.list_sessions("frank")
        assert view.token_hash == hash_token(pair.refresh_token)
        assert before + timedelta(hours=1) <= view.expires_at
        assert view.expires_at <= before + timedelta(hours=1, seconds=5)

    def test_sha512_hasher_round_trips_through_the_table(self, session):
        def sha512(raw: str) -> str:
            return hashlib.sha512(raw.encode("utf-8")).hexdigest()

        issuer = JWTTokenIssuer(IssuerConfig(secret="sql-test-secret-with-enough-entropy"))
        svc = SessionService(token_issuer=issuer, uow_factory=SQLAlchemyUnitOfWork, hasher=sha512)
        t1 = svc.issue_session_pair(IssueIn(owner_id="grace"))
        t2 = svc.rotate(RefreshIn(refresh_token=t1.refresh_token))

        by_hash = {v.token_hash: v for v in svc.list_sessions("grace")}
        assert by_hash[sha512(t1.refresh_token)].is_revoked is True
        assert by_hash[sha512(t2.refresh_token)].is_revoked is False
