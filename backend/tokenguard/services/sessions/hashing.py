"""Deterministic digest of raw refresh tokens, used as the storage lookup key."""

from __future__ import annotations

import hashlib
from collections.abc import Callable

TokenHasher = Callable[[str], str]


def hash_token(raw_token: str) -> str:
    """
    Return the SHA-256 hex digest of ``raw_token``.

    No salt: the same token must map to the same key across processes and
    restarts. The token already carries the entropy of its signature, so a
    plain digest is enough; this is not a password hash.

    :param raw_token: Refresh token exactly as presented by the client.
    :returns: 64-character lowercase hex digest.
    :raises TypeError: If ``raw_token`` is not a ``str``.
    """
    if not isinstance(raw_token, str):
        raise TypeError(f"raw_token must be str, got {type(raw_token).__name__}")
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
