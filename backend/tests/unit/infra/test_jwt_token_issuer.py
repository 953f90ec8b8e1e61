"""Unit tests for the PyJWT token issuer."""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from freezegun import freeze_time
from tokenguard.infra.jwt.jwt_token_issuer import IssuerConfig, JWTTokenIssuer
from tokenguard.services._shared.errors import InvalidTokenError, SigningError
from tokenguard.services._shared.ports import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE

SECRET = "unit-test-secret-with-enough-entropy"


@pytest.fixture()
def issuer() -> JWTTokenIssuer:
    return JWTTokenIssuer(IssuerConfig(secret=SECRET))


class TestJWTTokenIssuer:
    def test_claims(self, issuer):
        token = issuer.issue("alice", timedelta(minutes=15), token_type=ACCESS_TOKEN_TYPE)

        claims = jwt.decode(token, SECRET, algorithms=["HS256"])
        assert claims["sub"] == "alice"
        assert claims["type"] == "access"
        assert claims["exp"] - claims["iat"] == 15 * 60
        assert len(claims["jti"]) == 32

    def test_verify_returns_owner(self, issuer):
        token = issuer.issue("alice", timedelta(minutes=5), token_type=ACCESS_TOKEN_TYPE)
        assert issuer.verify(token) == "alice"

    def test_tokens_are_unique_within_the_same_second(self, issuer):
        with freeze_time("2026-01-01 12:00:00"):
            tokens = {
                issuer.issue("alice", timedelta(days=7), token_type=REFRESH_TOKEN_TYPE)
                for _ in range(20)
            }
        assert len(tokens) == 20

    def test_expired_token_is_rejected(self, issuer):
        with freeze_time("2026-01-01 12:00:00") as frozen:
            token = issuer.issue("alice", timedelta(minutes=15), token_type=ACCESS_TOKEN_TYPE)
            frozen.tick(timedelta(minutes=15, seconds=1))
            with pytest.raises(InvalidTokenError):
                issuer.verify(token)

    def test_leeway_tolerates_small_skew(self):
        lenient = JWTTokenIssuer(IssuerConfig(secret=SECRET, leeway=timedelta(seconds=30)))
        with freeze_time("2026-01-01 12:00:00") as frozen:
            token = lenient.issue("alice", timedelta(minutes=1), token_type=ACCESS_TOKEN_TYPE)
            frozen.tick(timedelta(minutes=1, seconds=10))
            assert lenient.verify(token) == "alice"

    def test_wrong_type_is_rejected(self, issuer):
        refresh = issuer.issue("alice", timedelta(days=7), token_type=REFRESH_TOKEN_TYPE)

        with pytest.raises(InvalidTokenError):
            issuer.verify(refresh)
        assert issuer.verify(refresh, expected_type=REFRESH_TOKEN_TYPE) == "alice"

    def test_foreign_signature_is_rejected(self, issuer):
        other = JWTTokenIssuer(IssuerConfig(secret="some-other-secret-entirely"))
        token = other.issue("alice", timedelta(minutes=5), token_type=ACCESS_TOKEN_TYPE)

        with pytest.raises(InvalidTokenError):
            issuer.verify(token)

    def test_tampered_or_malformed_tokens_are_rejected(self, issuer):
        token = issuer.issue("alice", timedelta(minutes=5), token_type=ACCESS_TOKEN_TYPE)
        header, payload, signature = token.split(".")
        forged = jwt.encode({"sub": "mallory"}, "x", algorithm="HS256").split(".")[1]

        for bad in (f"{header}.{forged}.{signature}", "not-a-jwt", ""):
            with pytest.raises(InvalidTokenError):
                issuer.verify(bad)

    def test_missing_claims_are_rejected(self, issuer):
        token = jwt.encode({"sub": "alice", "type": "access"}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            issuer.verify(token)

    def test_unsupported_algorithm_raises_signing_error(self):
        broken = JWTTokenIssuer(IssuerConfig(secret=SECRET, algorithm="NOPE256"))
        with pytest.raises(SigningError):
            broken.issue("alice", timedelta(minutes=5), token_type=ACCESS_TOKEN_TYPE)

    def test_empty_secret_is_refused(self):
        with pytest.raises(ValueError):
            IssuerConfig(secret="")
