"""factory-boy base bound to whatever ``db.session`` currently is.

The ``session`` fixture swaps ``db.session`` for a SAVEPOINT-scoped session,
so factories and the code under test always write through the same
transaction.
"""

from __future__ import annotations

from factory.alchemy import SQLAlchemyModelFactory
from tokenguard.core.extensions import db


def current_session():
    return db.session


class BaseFactory(SQLAlchemyModelFactory):
    class Meta:
        abstract = True
        sqlalchemy_session_factory = current_session
        sqlalchemy_session_persistence = "flush"
