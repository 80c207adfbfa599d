"""Shared API helpers for request parsing, service wiring and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar, cast
from uuid import uuid4

from flask import Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from credvault.core.config import token_lifetimes
from credvault.core.errors import Unauthorized
from credvault.security import PasswordHasher, TokenIssuer, TokenIssuerConfig
from credvault.services._shared.ports import ObjectStore
from credvault.services.session import SessionService

F = TypeVar("F", bound=Callable[..., Any])

OBJECT_STORE_KEY = "credvault.object_store"


# ----------------------------- Service wiring ------------------------------


def password_hasher_from_config(config: Mapping[str, Any]) -> PasswordHasher:
    return PasswordHasher(
        method=str(config["PASSWORD_HASH_METHOD"]),
        pepper=str(config.get("PASSWORD_PEPPER") or ""),
    )


def token_issuer_from_config(config: Mapping[str, Any]) -> TokenIssuer:
    """Build the token issuer from Flask config; secrets never come from env here."""

    access_expires, refresh_expires = token_lifetimes(config)
    return TokenIssuer(
        TokenIssuerConfig(
            access_secret=str(config["ACCESS_TOKEN_SECRET"]),
            refresh_secret=str(config["REFRESH_TOKEN_SECRET"]),
            access_expires=access_expires,
            refresh_expires=refresh_expires,
            algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
            issuer=config.get("TOKEN_ISSUER") or None,
        )
    )


def get_object_store() -> ObjectStore:
    """Return the app-wide object store, creating the MinIO adapter lazily."""

    store = current_app.extensions.get(OBJECT_STORE_KEY)
    if store is None:
        from credvault.infra.minio import MinioObjectStore

        store = MinioObjectStore.from_config(current_app.config)
        current_app.extensions[OBJECT_STORE_KEY] = store
    return cast(ObjectStore, store)


def build_session_service() -> SessionService:
    config = current_app.config
    return SessionService(
        hasher=password_hasher_from_config(config),
        tokens=token_issuer_from_config(config),
        object_store=get_object_store(),
        revoke_on_password_change=bool(config.get("SESSION_REVOKE_ON_PASSWORD_CHANGE")),
    )


# ------------------------------- Auth helpers ------------------------------


def require_auth(func: F) -> F:
    """Ensure the request carries a valid JWT access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_user_id() -> int:
    """Return the user id carried by the verified access token."""

    identity = get_jwt_identity()
    try:
        return int(identity)
    except (TypeError, ValueError) as exc:
        raise Unauthorized("Invalid access token") from exc


# --------------------------------- Uploads ---------------------------------


def save_upload(field_name: str) -> str | None:
    """Stage the multipart file ``field_name`` under ``UPLOAD_TEMP_DIR``.

    :returns: Local path of the staged file, or ``None`` when the field is
        absent or empty.
    """

    upload = request.files.get(field_name)
    if not isinstance(upload, FileStorage) or not upload.filename:
        return None
    temp_dir = Path(current_app.config["UPLOAD_TEMP_DIR"])
    temp_dir.mkdir(parents=True, exist_ok=True)
    safe_name = secure_filename(upload.filename) or "upload"
    target = temp_dir / f"{uuid4().hex}-{safe_name}"
    upload.save(str(target))
    return str(target)


# --------------------------------- Responses -------------------------------


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
