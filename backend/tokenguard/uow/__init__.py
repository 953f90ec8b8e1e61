"""Unit of Work abstractions and the SQLAlchemy implementation.

``SQLAlchemyUnitOfWork`` is resolved on first access: the in-memory store
subclasses :class:`UnitOfWork` and is itself imported by the ORM model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .base import UnitOfWork

if TYPE_CHECKING:
    from .sqlalchemy_uow import SQLAlchemyUnitOfWork

__all__ = ["UnitOfWork", "SQLAlchemyUnitOfWork"]


def __getattr__(name: str) -> Any:
    if name == "SQLAlchemyUnitOfWork":
        from .sqlalchemy_uow import SQLAlchemyUnitOfWork

        return SQLAlchemyUnitOfWork
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
