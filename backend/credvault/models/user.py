"""User model: the credential record owned by the user repository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, validates

from credvault.core.extensions import db


class User(db.Model):
    """
    Registered account with its credentials and current session token.

    Fields
    ------
    username : str
        Public handle. Stored trimmed and lowercased; unique.
    email : str
        Login email. Stored trimmed with its case preserved; unique.
    full_name : str
        Display name.
    password_hash : str
        Salted one-way hash; never the raw password.
    avatar_url : str
        URL of the stored avatar asset. Required.
    cover_image_url : str | None
        URL of the stored cover asset, if any.
    refresh_token : str | None
        The single refresh token currently accepted for this user.
    created_at, updated_at : datetime
        Set by the database on insert and on every update.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str] = mapped_column(String(500), nullable=False)
    cover_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    # -------------------- Validators --------------------
    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        """
        Trim and lowercase the username.

        :raises ValueError: If the username is missing or blank.
        """
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip().lower()

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Email is required.")
        return value.strip()

    @validates("password_hash", "avatar_url")
    def _require_non_empty(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value:
            raise ValueError(f"{key} must be a non-empty string.")
        return value
