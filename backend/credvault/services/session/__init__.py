from .dto import (
    ChangePasswordIn,
    LoginIn,
    LoginOut,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
    UserPublicOut,
)
from .service import SessionService

__all__ = [
    "SessionService",
    "RegisterIn",
    "LoginIn",
    "RefreshIn",
    "ChangePasswordIn",
    "UserPublicOut",
    "LoginOut",
    "TokenPairOut",
]
