# tokenguard/infra/jwt/jwt_token_issuer.py
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from tokenguard.services._shared.errors import InvalidTokenError, SigningError
from tokenguard.services._shared.ports import ACCESS_TOKEN_TYPE, TokenIssuer

REQUIRED_CLAIMS = ("sub", "type", "jti", "iat", "exp")


@dataclass(frozen=True, slots=True)
class IssuerConfig:
    """
    Signing parameters, passed explicitly at construction.

    :param secret: HMAC key. Must not be empty.
    :param algorithm: JWS algorithm understood by PyJWT.
    :param leeway: Clock-skew tolerance applied to ``exp`` on verification.
    """

    secret: str
    algorithm: str = "HS256"
    leeway: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("IssuerConfig.secret must be a non-empty string.")


class JWTTokenIssuer(TokenIssuer):
    """
    Adapter for PyJWT.

    Claims: ``sub`` (owner id), ``type`` (``access``/``refresh``), ``jti``
    (random, so two tokens minted in the same second never collide), ``iat``
    and ``exp``.
    """

    def __init__(self, config: IssuerConfig) -> None:
        self.config = config

    def issue(self, owner_id: str, ttl: timedelta, *, token_type: str) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": owner_id,
            "type": token_type,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + ttl,
        }
        try:
            return jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
            raise SigningError() from exc

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify signature and expiry and return the claims.

        :raises InvalidTokenError: On any verification failure.
        """
        try:
            return jwt.decode(
                token,
                self.config.secret,
                algorithms=[self.config.algorithm],
                leeway=self.config.leeway,
                options={"require": list(REQUIRED_CLAIMS)},
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError() from exc

    def verify(self, token: str, *, expected_type: str = ACCESS_TOKEN_TYPE) -> str:
        claims = self.decode(token)
        if claims.get("type") != expected_type:
            raise InvalidTokenError()
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError()
        return subject
