"""Signed access/refresh token issuing and refresh-token verification."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from credvault.services._shared.errors import AuthError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class InvalidTokenError(AuthError):
    """Raised when a token fails signature, expiry or type checks."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class TokenIssuerConfig:
    """
    Signing configuration injected into :class:`TokenIssuer`.

    :param access_secret: HMAC key for access tokens.
    :type access_secret: str
    :param refresh_secret: HMAC key for refresh tokens (must differ from ``access_secret``).
    :type refresh_secret: str
    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    :param algorithm: JWS algorithm.
    :type algorithm: str
    :param issuer: Optional ``iss`` claim stamped on and required from tokens.
    :type issuer: str | None
    """

    access_secret: str
    refresh_secret: str
    access_expires: timedelta = timedelta(days=1)
    refresh_expires: timedelta = timedelta(days=10)
    algorithm: str = "HS256"
    issuer: str | None = None

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Token signing secrets must be non-empty.")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use distinct secrets.")
        if self.access_expires <= timedelta(0) or self.refresh_expires <= timedelta(0):
            raise ValueError("Token lifetimes must be positive.")


@dataclass(frozen=True, slots=True)
class AccessIdentity:
    """
    Identity claims embedded in an access token.

    :param user_id: User primary key.
    :type user_id: int
    :param username: Normalized username.
    :type username: str
    :param email: Email as stored.
    :type email: str
    :param full_name: Display name.
    :type full_name: str
    """

    user_id: int
    username: str
    email: str
    full_name: str


@dataclass(frozen=True, slots=True)
class RefreshClaims:
    """
    Verified content of a refresh token.

    :param user_id: User the token was issued to.
    :type user_id: int
    :param jti: Unique token identifier.
    :type jti: str
    :param expires_at: Absolute expiry (UTC).
    :type expires_at: datetime
    """

    user_id: int
    jti: str
    expires_at: datetime


@dataclass(slots=True)
class TokenIssuer:
    """
    Issue signed access/refresh JWTs and verify refresh tokens.

    Access tokens carry the identity needed by downstream handlers and use the
    claim layout ``flask-jwt-extended`` expects (``sub``, ``type``, ``jti``,
    ``fresh``), so protected routes can verify them with
    ``verify_jwt_in_request``. Refresh tokens carry the user id only and are
    signed with a separate secret. Verification here never consults storage;
    matching against the stored token is the session service's job.
    """

    config: TokenIssuerConfig
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(UTC))

    # ------------------------------------------------------------------ #
    # Issuing
    # ------------------------------------------------------------------ #

    def issue_access_token(self, identity: AccessIdentity) -> str:
        claims: dict[str, Any] = {
            "sub": str(identity.user_id),
            "username": identity.username,
            "email": identity.email,
            "full_name": identity.full_name,
            "type": ACCESS_TOKEN_TYPE,
            "fresh": False,
        }
        return self._encode(claims, self.config.access_secret, self.config.access_expires)

    def issue_refresh_token(self, user_id: int) -> str:
        claims: dict[str, Any] = {"sub": str(user_id), "type": REFRESH_TOKEN_TYPE}
        return self._encode(claims, self.config.refresh_secret, self.config.refresh_expires)

    # ------------------------------------------------------------------ #
    # Verification
    # ------------------------------------------------------------------ #

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        """
        Check signature, expiry and token type of a refresh token.

        :param token: Encoded refresh JWT.
        :returns: Verified claims.
        :raises InvalidTokenError: On any signature, expiry or shape problem.
        """
        try:
            payload = jwt.decode(
                token,
                self.config.refresh_secret,
                algorithms=[self.config.algorithm],
                issuer=self.config.issuer,
                options={"require": ["exp", "sub", "jti"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("Refresh token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError("Invalid refresh token") from exc

        if payload.get("type") != REFRESH_TOKEN_TYPE:
            raise InvalidTokenError("Wrong token type: refresh token required")

        subject = str(payload["sub"])
        if not subject.isdigit():
            raise InvalidTokenError("Invalid token subject")

        return RefreshClaims(
            user_id=int(subject),
            jti=str(payload["jti"]),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _encode(self, claims: dict[str, Any], secret: str, lifetime: timedelta) -> str:
        now = self.clock()
        payload = dict(claims)
        # A random jti keeps two tokens minted in the same second distinct.
        payload["jti"] = uuid4().hex
        payload["iat"] = int(now.timestamp())
        payload["nbf"] = int(now.timestamp())
        payload["exp"] = int((now + lifetime).timestamp())
        if self.config.issuer:
            payload["iss"] = self.config.issuer
        return jwt.encode(payload, secret, algorithm=self.config.algorithm)
