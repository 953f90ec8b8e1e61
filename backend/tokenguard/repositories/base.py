"""Generic repository base for SQLAlchemy 2.x.

Repositories are persistence-only:

* They never implement use cases or domain policies.
* They never call commit/rollback; the Unit of Work owns the transaction.
* Driver errors are surfaced as :class:`SessionStoreError` so services depend
  on a framework-agnostic contract.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, Generic, ParamSpec, TypeVar, cast

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import InstrumentedAttribute, Session

from tokenguard.core.extensions import db
from tokenguard.services._shared.errors import SessionStoreError

E = TypeVar("E")  # SQLAlchemy mapped entity type
P = ParamSpec("P")
R = TypeVar("R")


def store_errors(fn: Callable[P, R]) -> Callable[P, R]:
    """Re-raise SQLAlchemy failures from ``fn`` as :class:`SessionStoreError`."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise SessionStoreError(f"{fn.__name__} failed") from exc

    return wrapper


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single aggregate.

    Subclasses MUST define ``model``, the SQLAlchemy mapped class.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``tokenguard.core.extensions``.

        :param session: Session shared across the Unit of Work scope.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, or the Flask-scoped one.

        :rtype: :class:`sqlalchemy.orm.Session`
        """
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        pk = getattr(self.model, "id", None)
        if pk is None:
            raise RuntimeError(f"{self.model.__name__} has no 'id' attribute.")
        return cast(InstrumentedAttribute[Any], pk)

    def add(self, instance: E) -> E:
        """Stage a new entity and flush to materialize defaults and constraints.

        :param instance: New entity instance.
        :returns: The same instance after ``flush()``.
        """
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any, *, for_update: bool = False) -> E | None:
        """Retrieve a single entity by primary key, re-reading it from the database.

        :param entity_id: Primary-key value.
        :param for_update: Lock the row (``SELECT ... FOR UPDATE``) when supported.
        :returns: Entity or ``None``.
        """
        stmt = select(self.model).where(self._pk_attr() == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def flush(self) -> None:
        """Flush pending changes to the database without committing."""
        self.session.flush()
