"""Factory Boy definition for :class:`tokenguard.models.refresh_session.RefreshSession`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import factory
from tokenguard.models.refresh_session import RefreshSession
from tokenguard.services.sessions.hashing import hash_token

from tests.factories import BaseFactory


class RefreshSessionFactory(BaseFactory):
    """
    Build persisted :class:`RefreshSession` rows.

    Notes
    -----
    - ``raw_token`` is a factory parameter: it is hashed into ``token_hash``
      and never stored.
    - Sessions expire seven days after creation unless overridden.
    """

    class Meta:
        model = RefreshSession

    class Params:
        raw_token = factory.Sequence(lambda n: f"refresh-token-{n}")

    owner_id = factory.Sequence(lambda n: f"user-{n}")
    token_hash = factory.LazyAttribute(lambda o: hash_token(o.raw_token))
    is_revoked = False
    expires_at = factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(days=7))
