"""Tests for the RefreshSession model."""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from tokenguard.models.refresh_session import RefreshSession
from tokenguard.services.sessions.hashing import hash_token

from tests.factories.refresh_session import RefreshSessionFactory


class TestRefreshSession:
    def test_defaults_on_insert(self, session):
        s = RefreshSession(
            owner_id="u1",
            token_hash=hash_token("t1"),
            expires_at=datetime.now(UTC) + timedelta(days=1),
        )
        session.add(s)
        session.commit()

        assert len(s.id) == 36
        assert s.is_revoked is False
        assert s.created_at is not None

    def test_token_hash_unique(self, session):
        RefreshSessionFactory(raw_token="same")
        session.commit()

        session.add(RefreshSessionFactory.build(raw_token="same"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_revocation_is_monotonic(self, session):
        s = RefreshSessionFactory(is_revoked=True)
        session.commit()

        with pytest.raises(ValueError):
            s.is_revoked = False
        s.is_revoked = True
        assert s.is_revoked is True

    def test_owner_id_is_immutable(self):
        s = RefreshSessionFactory.build(owner_id="alice")
        with pytest.raises(ValueError):
            s.owner_id = "mallory"

    def test_basic_validations(self):
        with pytest.raises(ValueError):
            RefreshSession(owner_id="", token_hash=hash_token("x"))
        with pytest.raises(ValueError):
            RefreshSession(owner_id="u", token_hash="")

    def test_column_limits(self):
        sha512 = hashlib.sha512(b"x").hexdigest()
        s = RefreshSession(owner_id="u" * 255, token_hash=sha512)
        assert s.token_hash == sha512

        with pytest.raises(ValueError):
            RefreshSession(owner_id="u" * 256, token_hash=hash_token("x"))
        with pytest.raises(ValueError):
            RefreshSession(owner_id="u", token_hash="a" * 129)

    def test_digest_is_stored_as_given(self):
        digest = hash_token("x").upper()
        assert RefreshSession(owner_id="u", token_hash=digest).token_hash == digest

    def test_to_view_returns_aware_utc(self, session):
        s = RefreshSessionFactory(owner_id="u2")
        session.commit()
        session.expire_all()

        view = session.get(RefreshSession, s.id).to_view()
        assert view.owner_id == "u2"
        assert view.expires_at.tzinfo is not None
        assert view.created_at.utcoffset() == timedelta(0)
        assert view.expires_at > view.created_at

    def test_repr(self):
        s = RefreshSessionFactory.build(id="abc")
        assert repr(s) == "<RefreshSession id=abc>"
