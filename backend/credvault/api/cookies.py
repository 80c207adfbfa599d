"""HTTP cookie helpers for auth token transport."""

from __future__ import annotations

from flask import Response, current_app, request

from credvault.core.config import token_lifetimes

COOKIE_PATH = "/"


def _cookie_options() -> dict[str, object]:
    config = current_app.config
    return {
        "httponly": True,
        "secure": bool(config.get("AUTH_COOKIE_SECURE", True)),
        "samesite": config.get("AUTH_COOKIE_SAMESITE", "Lax"),
        "path": COOKIE_PATH,
    }


def set_token_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    config = current_app.config
    access_ttl, refresh_ttl = token_lifetimes(config)
    options = _cookie_options()

    response.set_cookie(
        config["ACCESS_COOKIE_NAME"],
        access_token,
        max_age=int(access_ttl.total_seconds()),
        **options,  # type: ignore[arg-type]
    )
    response.set_cookie(
        config["REFRESH_COOKIE_NAME"],
        refresh_token,
        max_age=int(refresh_ttl.total_seconds()),
        **options,  # type: ignore[arg-type]
    )


def clear_token_cookies(response: Response) -> None:
    config = current_app.config
    options = _cookie_options()
    options.pop("httponly")
    for name in (config["ACCESS_COOKIE_NAME"], config["REFRESH_COOKIE_NAME"]):
        response.delete_cookie(name, **options)  # type: ignore[arg-type]


def read_refresh_cookie() -> str | None:
    return request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"]) or None
