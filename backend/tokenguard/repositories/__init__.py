"""Repository package exposing persistence-layer access for refresh sessions."""

from __future__ import annotations

from tokenguard.repositories.base import BaseRepository, store_errors
from tokenguard.repositories.refresh_session import RefreshSessionRepository

__all__ = ["BaseRepository", "RefreshSessionRepository", "store_errors"]
