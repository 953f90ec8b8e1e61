from __future__ import annotations

import itertools
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from tokenguard.services._shared.errors import InvalidTokenError, SigningError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenIssuer(Protocol):
    """Port for minting and verifying signed access/refresh tokens."""

    def issue(self, owner_id: str, ttl: timedelta, *, token_type: str) -> str:
        """
        Sign a token for ``owner_id`` that expires ``ttl`` from now.

        :raises SigningError: If the signing primitive fails.
        """

    def verify(self, token: str, *, expected_type: str = ACCESS_TOKEN_TYPE) -> str:
        """
        Validate ``token`` and return the owner id it was issued to.

        :raises InvalidTokenError: On bad signature, malformed structure,
            wrong token type or an expiry in the past.
        """


class StubTokenIssuer(TokenIssuer):
    """Deterministic token issuer used in unit tests.

    :param clock: Time source used for ``exp`` and verification.
    :param fail_with: When set, every :meth:`issue` call fails with
        :class:`SigningError` chained to this exception.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        self.clock = clock or (lambda: datetime.now(UTC))
        self.fail_with = fail_with
        self._seq = itertools.count(1)
        self._lock = threading.Lock()
        self._issued: dict[str, tuple[str, str, datetime]] = {}

    def issue(self, owner_id: str, ttl: timedelta, *, token_type: str) -> str:
        if self.fail_with is not None:
            raise SigningError() from self.fail_with
        with self._lock:
            token = f"{token_type}.{owner_id}.{next(self._seq)}"
            self._issued[token] = (owner_id, token_type, self.clock() + ttl)
        return token

    def verify(self, token: str, *, expected_type: str = ACCESS_TOKEN_TYPE) -> str:
        claims = self._issued.get(token)
        if claims is None:
            raise InvalidTokenError()
        owner_id, token_type, expires_at = claims
        if token_type != expected_type or expires_at <= self.clock():
            raise InvalidTokenError()
        return owner_id
