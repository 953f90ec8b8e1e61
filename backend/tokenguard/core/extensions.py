"""Extension singletons shared by the factory, the models and the session stores."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

REDIS_EXTENSION_KEY = "redis_client"

# Constraint names must match backend/migrations.
metadata = MetaData(
    naming_convention={
        "pk": "pk_%(table_name)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ix": "ix_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    }
)

db: SQLAlchemy = SQLAlchemy(metadata=metadata, session_options={"autoflush": False})
migrate = Migrate(render_as_batch=True)


def connect_redis(url: str) -> redis.Redis:
    """Open a client for ``url`` and fail fast when the server is unreachable.

    :raises RuntimeError: If ``PING`` fails.
    """
    client = redis.Redis.from_url(url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Cannot reach the session store at {url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Bind the database and migrations, and connect Redis when configured.

    Parameters
    ----------
    app: flask.Flask
        Application being assembled. Importing :mod:`tokenguard.models` here
        registers ``refresh_sessions`` on the metadata Alembic inspects.

    Raises
    ------
    RuntimeError
        If the Redis backend is selected without ``REDIS_URL``, or the server
        does not answer.
    """
    db.init_app(app)

    from tokenguard import models as _models  # noqa: F401

    migrate.init_app(app, db)

    url = app.config.get("REDIS_URL")
    if url:
        app.extensions[REDIS_EXTENSION_KEY] = connect_redis(url)
    elif str(app.config.get("SESSION_STORE_BACKEND", "")).lower() == "redis":
        raise RuntimeError("SESSION_STORE_BACKEND=redis requires REDIS_URL.")


def get_redis() -> redis.Redis:
    """Return the Redis client bound to the current application."""
    client = current_app.extensions.get(REDIS_EXTENSION_KEY)
    if client is None:
        raise RuntimeError("No Redis client configured for this app; set REDIS_URL.")
    return client
