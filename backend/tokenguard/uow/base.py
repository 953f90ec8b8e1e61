"""
Shared transaction boundary for session-store backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tokenguard.services._shared.ports.session_store import SessionRepository


class UnitOfWork(ABC):
    """
    One session-store transaction, used as a context manager.

    Leaving the block cleanly commits; an exception rolls back and propagates.
    A commit that fails is rolled back before its error propagates. Subclasses
    bind ``sessions`` to the transaction and may release connections in
    :meth:`close`, which always runs last.
    """

    sessions: SessionRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                self.rollback()
                return
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        finally:
            self.close()

    def close(self) -> None:
        """Release backend resources held by the transaction."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
