# tokenguard/services/sessions/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

# ------------------------------ Requests ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IssueIn:
    """
    Input DTO for first issuance, after primary authentication succeeded.

    :param owner_id: Authenticated principal.
    :type owner_id: str
    """

    owner_id: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token rotation.

    :param refresh_token: Raw refresh token as presented by the client.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class RevokeIn:
    """
    Logout request; the token is revoked if it matches a session.

    :param refresh_token: Raw refresh token to revoke.
    :type refresh_token: str
    """

    refresh_token: str


# ------------------------------ Results ----------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Freshly signed pair returned by issuance and every successful rotation.

    :param access_token: Encoded access token.
    :type access_token: str
    :param refresh_token: Encoded refresh token.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionTokenConfig:
    """
    Lifetimes applied when minting a pair.

    :param access_expires: Lifetime of access tokens.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token and session lifetime.
    :type refresh_expires: timedelta
    """

    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)

    def __post_init__(self) -> None:
        if self.access_expires <= timedelta(0) or self.refresh_expires <= timedelta(0):
            raise ValueError("Token lifetimes must be positive.")
