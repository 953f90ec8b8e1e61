"""Environment-driven settings for the session engine.

``APP_ENV`` picks one of the classes below; every value can be overridden
through an environment variable of the same name (or a ``.env`` file).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

ENV_VAR: Final[str] = "APP_ENV"

# Refused by ProductionConfig.validate().
INSECURE_JWT_SECRET: Final[str] = "CHANGE_ME_JWT"

SESSION_STORE_BACKENDS: Final[frozenset[str]] = frozenset({"sqlalchemy", "redis"})

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})

load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Read a flag such as ``SQLALCHEMY_ECHO=yes``.

    Returns ``default`` when ``name`` is unset; otherwise whether the value is
    one of ``1/true/yes/y/on`` (case-insensitive).
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    """Read an integer such as ``REFRESH_TOKEN_TTL_SECONDS=86400``.

    Parameters
    ----------
    name: str
        Variable to read.
    default: int
        Used when the variable is unset or blank.

    Raises
    ------
    ValueError
        If the value is not an integer.
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


class BaseConfig:
    """Settings shared by every environment.

    Attributes
    ----------
    JWT_SECRET_KEY: str
        HMAC key handed to the token issuer when the service is built.
    JWT_ALGORITHM: str
        PyJWT algorithm name.
    JWT_LEEWAY_SECONDS: int
        Clock skew tolerated on ``exp``.
    ACCESS_TOKEN_TTL_SECONDS: int
        Access token lifetime, 15 minutes.
    REFRESH_TOKEN_TTL_SECONDS: int
        Refresh token and session lifetime, 7 days.
    ROTATION_MAX_ATTEMPTS: int
        Rotation attempts when the Redis store reports a concurrent write.
    SESSION_STORE_BACKEND: str
        ``"sqlalchemy"`` or ``"redis"``.
    REDIS_URL: str | None
        Required by the Redis backend.
    """

    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", INSECURE_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_LEEWAY_SECONDS = env_int("JWT_LEEWAY_SECONDS", 0)

    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 15 * 60)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 60 * 60)
    ROTATION_MAX_ATTEMPTS = env_int("ROTATION_MAX_ATTEMPTS", 3)

    SESSION_STORE_BACKEND = os.getenv("SESSION_STORE_BACKEND", "sqlalchemy").strip().lower()
    REDIS_URL = os.getenv("REDIS_URL")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./tokenguard.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PROPAGATE_EXCEPTIONS = False
    DEBUG = False
    TESTING = False

    @classmethod
    def validate(cls) -> None:
        """Reject settings the engine cannot run with.

        :raises RuntimeError: On a non-positive lifetime or attempt count, or
            an unknown store backend.
        """
        if cls.ACCESS_TOKEN_TTL_SECONDS <= 0 or cls.REFRESH_TOKEN_TTL_SECONDS <= 0:
            raise RuntimeError("Token lifetimes must be positive.")
        if cls.ROTATION_MAX_ATTEMPTS < 1:
            raise RuntimeError("ROTATION_MAX_ATTEMPTS must be at least 1.")
        if cls.SESSION_STORE_BACKEND not in SESSION_STORE_BACKENDS:
            raise RuntimeError(f"Unknown SESSION_STORE_BACKEND {cls.SESSION_STORE_BACKEND!r}.")


class DevelopmentConfig(BaseConfig):
    """Local runs: debug on unless ``FLASK_DEBUG`` says otherwise."""

    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """Test runs.

    Notes
    -----
    - In-memory SQLite unless ``TEST_DATABASE_URL`` points elsewhere.
    - Fixed signing secret and the relational store, whatever the environment says.
    """

    TESTING = True
    PROPAGATE_EXCEPTIONS = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    JWT_SECRET_KEY = "testing-secret-key-with-enough-entropy"
    SESSION_STORE_BACKEND = "sqlalchemy"
    REDIS_URL = None


class ProductionConfig(BaseConfig):
    """Deployed runs: no SQL echo, and a real signing secret is mandatory."""

    SQLALCHEMY_ECHO = False

    @classmethod
    def validate(cls) -> None:
        super().validate()
        if not cls.JWT_SECRET_KEY or cls.JWT_SECRET_KEY == INSECURE_JWT_SECRET:
            raise RuntimeError("JWT_SECRET_KEY must be set to a real secret in production.")


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the settings class named by ``APP_ENV`` (development when unset or unknown)."""
    return CONFIG_MAP.get(os.getenv(ENV_VAR, "development").strip().lower(), DevelopmentConfig)
