"""Concurrent rotations of the same refresh token: exactly one wins."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from tokenguard.core.config import TestingConfig
from tokenguard.core.extensions import db
from tokenguard.factory import create_app
from tokenguard.models import RefreshSession
from tokenguard.services._shared.errors import ReuseDetectedError
from tokenguard.services._shared.ports import InMemorySessionStore, StubTokenIssuer
from tokenguard.services.sessions.dto import IssueIn, RefreshIn, TokenPairOut
from tokenguard.services.sessions.service import SessionService
from tokenguard.uow import SQLAlchemyUnitOfWork


class SlowIssuer(StubTokenIssuer):
    """Widens the window between lookup and commit."""

    def issue(self, owner_id, ttl, *, token_type):
        time.sleep(0.01)
        return super().issue(owner_id, ttl, token_type=token_type)


@pytest.mark.parametrize("workers", [2, 8])
def test_parallel_rotation_has_single_winner(workers):
    store = InMemorySessionStore()
    service = SessionService(token_issuer=SlowIssuer(), uow_factory=store)
    t1 = service.issue_session_pair(IssueIn(owner_id="u1"))
    barrier = threading.Barrier(workers)

    def attempt():
        barrier.wait()
        try:
            return service.rotate(RefreshIn(refresh_token=t1.refresh_token))
        except ReuseDetectedError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda _: attempt(), range(workers)))

    winners = [r for r in results if isinstance(r, TokenPairOut)]
    losers = [r for r in results if isinstance(r, ReuseDetectedError)]
    assert len(winners) == 1
    assert len(losers) == workers - 1
    # the race looks like theft: every session of the owner ends up revoked
    rows = store.all()
    assert len(rows) == 2
    assert all(r.is_revoked for r in rows)


def test_rotations_of_different_owners_do_not_interfere():
    store = InMemorySessionStore()
    service = SessionService(token_issuer=StubTokenIssuer(), uow_factory=store)
    pairs = {f"u{i}": service.issue_session_pair(IssueIn(owner_id=f"u{i}")) for i in range(6)}

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(
            pool.map(lambda p: service.rotate(RefreshIn(refresh_token=p.refresh_token)), pairs.values())
        )

    assert all(isinstance(r, TokenPairOut) for r in results)
    assert sum(not r.is_revoked for r in store.all()) == 6


def test_parallel_rotation_on_sqlite_file_has_single_winner(tmp_path):
    """Each thread gets its own app context, so its own connection and transaction."""
    app = create_app(
        TestingConfig,
        overrides={
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'race.db'}",
            "LOG_LEVEL": "WARNING",
        },
        instance_config_filename=None,
    )
    service = SessionService(token_issuer=SlowIssuer(), uow_factory=SQLAlchemyUnitOfWork)
    with app.app_context():
        db.create_all()
        t1 = service.issue_session_pair(IssueIn(owner_id="u1"))

    barrier = threading.Barrier(2)

    def attempt():
        with app.app_context():
            barrier.wait()
            try:
                return service.rotate(RefreshIn(refresh_token=t1.refresh_token))
            except ReuseDetectedError as exc:
                return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: attempt(), range(2)))

    assert sorted(type(r).__name__ for r in results) == ["ReuseDetectedError", "TokenPairOut"]
    with app.app_context():
        rows = db.session.query(RefreshSession).all()
        assert len(rows) == 2
        assert all(r.is_revoked for r in rows)
        db.engine.dispose()
