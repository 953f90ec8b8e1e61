"""
Relational session store transaction on the Flask-SQLAlchemy session.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tokenguard.core.extensions import db
from tokenguard.repositories import RefreshSessionRepository
from tokenguard.services._shared.errors import SessionStoreError
from tokenguard.uow.base import UnitOfWork


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    Satisfies :class:`~tokenguard.services._shared.ports.SessionUnitOfWork`.

    The lookup, the revocation and the successor insert of a rotation share
    one session, so they commit or roll back together. The transaction starts
    lazily on the first statement.
    """

    def __init__(self, session: Session | None = None) -> None:
        self.session = session if session is not None else db.session
        self.sessions = RefreshSessionRepository(session=self.session)

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            raise SessionStoreError("commit failed") from exc

    def rollback(self) -> None:
        self.session.rollback()
