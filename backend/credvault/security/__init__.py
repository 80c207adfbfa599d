"""Credential hashing and token signing primitives used by the session service."""

from .passwords import HashingError, PasswordHasher
from .tokens import (
    AccessIdentity,
    InvalidTokenError,
    RefreshClaims,
    TokenIssuer,
    TokenIssuerConfig,
)

__all__ = [
    "AccessIdentity",
    "HashingError",
    "InvalidTokenError",
    "PasswordHasher",
    "RefreshClaims",
    "TokenIssuer",
    "TokenIssuerConfig",
]
