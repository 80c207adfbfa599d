"""CORS configuration for the API, allowing credentialed token cookies."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from credvault.core.logger import REQUEST_ID_HEADER


def init_app(app: Flask) -> None:
    """Configure CORS for ``/api/*`` from ``CORS_ORIGINS``.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS`` and ``CORS_MAX_AGE`` settings are
        consulted.

    Notes
    -----
    Browsers only send the ``accessToken``/``refreshToken`` cookies on
    cross-origin calls when credentials are allowed, which in turn forbids a
    wildcard origin. A blank or ``"*"`` ``CORS_ORIGINS`` therefore disables
    credential support.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        expose_headers=[REQUEST_ID_HEADER],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
