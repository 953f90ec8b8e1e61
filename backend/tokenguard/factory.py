"""Flask application hosting the refresh session engine."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Flask

from tokenguard.core.config import BaseConfig, get_config
from tokenguard.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: type[BaseConfig] | object | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    instance_config_filename: str | None = "config.py",
) -> Flask:
    """Build the app: settings, JSON logging, database/Redis, error handlers, CLI.

    :param config: Settings class or object; ``APP_ENV`` decides when omitted.
    :param overrides: Keys applied last, after the instance file.
    :param instance_config_filename: Optional file in the instance folder.
    :raises RuntimeError: If the settings fail validation or Redis is unreachable.
    """
    settings = get_config() if config is None else config
    validate = getattr(settings, "validate", None)
    if callable(validate):
        validate()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(settings)
    if instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"])
    init_logging(app)

    from tokenguard import cli
    from tokenguard.core import errors, extensions

    extensions.init_app(app)
    errors.init_app(app)
    cli.init_app(app)
    return app
