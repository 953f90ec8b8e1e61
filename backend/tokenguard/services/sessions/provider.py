"""Build the session service from application configuration."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from flask import current_app

from tokenguard.core.extensions import get_redis
from tokenguard.infra.jwt.jwt_token_issuer import IssuerConfig, JWTTokenIssuer
from tokenguard.infra.redis.redis_session_store import RedisSessionStore
from tokenguard.services._shared.base import UowFactory
from tokenguard.services.sessions.dto import SessionTokenConfig
from tokenguard.services.sessions.service import SessionService
from tokenguard.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

EXTENSION_KEY = "session_service"


def build_uow_factory(config: Mapping[str, Any]) -> UowFactory:
    """Return the unit-of-work factory for ``SESSION_STORE_BACKEND``.

    :raises ValueError: For an unknown backend name.
    """
    backend = str(config.get("SESSION_STORE_BACKEND", "sqlalchemy")).lower()
    if backend == "sqlalchemy":
        return SQLAlchemyUnitOfWork
    if backend == "redis":
        return RedisSessionStore(get_redis())
    raise ValueError(f"Unknown SESSION_STORE_BACKEND {backend!r}")


def build_session_service(config: Mapping[str, Any]) -> SessionService:
    """Wire a :class:`SessionService` from a Flask-style config mapping."""
    issuer = JWTTokenIssuer(
        IssuerConfig(
            secret=config["JWT_SECRET_KEY"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            leeway=timedelta(seconds=int(config.get("JWT_LEEWAY_SECONDS", 0))),
        )
    )
    token_cfg = SessionTokenConfig(
        access_expires=timedelta(seconds=int(config["ACCESS_TOKEN_TTL_SECONDS"])),
        refresh_expires=timedelta(seconds=int(config["REFRESH_TOKEN_TTL_SECONDS"])),
    )
    return SessionService(
        token_issuer=issuer,
        uow_factory=build_uow_factory(config),
        token_cfg=token_cfg,
        max_attempts=int(config.get("ROTATION_MAX_ATTEMPTS", 3)),
    )


def get_session_service() -> SessionService:
    """Return the service bound to ``current_app``, building it on first use."""
    service = current_app.extensions.get(EXTENSION_KEY)
    if service is None:
        service = build_session_service(current_app.config)
        current_app.extensions[EXTENSION_KEY] = service
    return service
