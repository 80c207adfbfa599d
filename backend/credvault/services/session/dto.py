"""
DTOs for SessionService.

Data Transfer Objects (DTOs) isolate the service layer from ORM models,
ensuring clear input/output contracts. Output DTOs never carry the password
hash or the stored refresh token.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from credvault.models.user import User

# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for account registration.

    :param full_name: Display name.
    :type full_name: str
    :param email: Login email (trimmed, case preserved).
    :type email: str
    :param username: Public handle (trimmed and lowercased before use).
    :type username: str
    :param password: Raw password; hashed before persistence.
    :type password: str
    :param avatar: Local path of the uploaded avatar file. Required.
    :type avatar: str | None
    :param cover_image: Local path of the uploaded cover file, if any.
    :type cover_image: str | None
    """

    full_name: str
    email: str
    username: str
    password: str
    avatar: str | None = None
    cover_image: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for authentication. One of ``username``/``email`` is required.

    :param password: Raw password.
    :type password: str
    :param username: Username to look up.
    :type username: str | None
    :param email: Email to look up.
    :type email: str | None
    """

    password: str
    username: str | None = None
    email: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token rotation.

    :param refresh_token: Refresh token presented by the client.
    :type refresh_token: str | None
    """

    refresh_token: str | None


@dataclass(frozen=True, slots=True)
class ChangePasswordIn:
    """
    Input DTO for changing a user's password.

    :param user_id: Authenticated user identifier.
    :type user_id: int
    :param old_password: Current password for verification.
    :type old_password: str
    :param new_password: New password to set.
    :type new_password: str
    """

    user_id: int
    old_password: str
    new_password: str


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Public view of a user.

    :param id: Identifier.
    :type id: int
    :param username: Normalized username.
    :type username: str
    :param email: Email as stored.
    :type email: str
    :param full_name: Display name.
    :type full_name: str
    :param avatar_url: Avatar asset URL.
    :type avatar_url: str
    :param cover_image_url: Cover asset URL, if any.
    :type cover_image_url: str | None
    :param created_at: Creation timestamp.
    :type created_at: datetime | None
    :param updated_at: Last update timestamp.
    :type updated_at: datetime | None
    """

    id: int
    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, user: User) -> UserPublicOut:
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar_url=user.avatar_url,
            cover_image_url=user.cover_image_url,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Freshly issued access/refresh token pair.

    :param access_token: Short-lived access JWT.
    :type access_token: str
    :param refresh_token: Long-lived refresh JWT, now the stored one.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class LoginOut:
    """
    Result of a successful login.

    :param user: Public view of the authenticated user.
    :type user: UserPublicOut
    :param access_token: Short-lived access JWT.
    :type access_token: str
    :param refresh_token: Long-lived refresh JWT.
    :type refresh_token: str
    """

    user: UserPublicOut
    access_token: str
    refresh_token: str
