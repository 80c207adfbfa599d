"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any

from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

from credvault.core.config import token_lifetimes

# Global naming convention for all constraints; services match IntegrityErrors
# against these names (e.g. ``uq_users_email``).
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()


def configure_jwt(config: MutableMapping[str, Any]) -> None:
    """Point flask-jwt-extended at the access-token secret and lifetime.

    Cookie CSRF checks stay off whatever the config says: tokens come from
    :class:`credvault.security.tokens.TokenIssuer`, which adds no ``csrf`` claim.
    """
    access_expires, _ = token_lifetimes(config)
    config["JWT_SECRET_KEY"] = config["ACCESS_TOKEN_SECRET"]
    config["JWT_ACCESS_TOKEN_EXPIRES"] = access_expires
    config["JWT_COOKIE_CSRF_PROTECT"] = False
    if config.get("TOKEN_ISSUER"):
        config.setdefault("JWT_DECODE_ISSUER", config["TOKEN_ISSUER"])


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, and JWT verification.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`credvault.models` package to ensure SQLAlchemy metadata is ready
        for migrations.

    Notes
    -----
    ``flask-jwt-extended`` only *verifies* access tokens on protected routes;
    tokens are issued by :class:`credvault.security.tokens.TokenIssuer`. Its
    secret and lifetime are therefore derived from the access-token settings
    so both sides always agree.
    """
    configure_jwt(app.config)

    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from credvault import models as _models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)
