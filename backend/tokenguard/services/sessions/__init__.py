"""Refresh session lifecycle: hashing, DTOs and the rotation engine."""

from __future__ import annotations

from .dto import IssueIn, RefreshIn, RevokeIn, SessionTokenConfig, TokenPairOut
from .hashing import hash_token
from .service import SessionService, SessionState, classify

__all__ = [
    "IssueIn",
    "RefreshIn",
    "RevokeIn",
    "SessionService",
    "SessionState",
    "SessionTokenConfig",
    "TokenPairOut",
    "classify",
    "hash_token",
]
