"""
SessionService
==============

Owns the credential and token lifecycle of a user:

- ``register`` creates the account after uploading its avatar/cover assets.
- ``login`` verifies credentials and stores a fresh refresh token, superseding
  any previous session.
- ``refresh`` rotates the token pair; the stored token is swapped with a
  compare-and-swap so concurrent refreshes of one token yield one winner.
- ``logout`` clears the stored refresh token.
- ``change_password`` and ``get_current_user`` act on an identity already
  verified upstream.

Every step runs in its own Unit of Work. Hashing, token signing and uploads
always happen outside of an open transaction.
"""

from __future__ import annotations

import hmac
import logging
from pathlib import Path

from sqlalchemy.exc import IntegrityError

from credvault.models.user import User
from credvault.repositories.user import ANY_TOKEN, normalize_username
from credvault.security import AccessIdentity, PasswordHasher, TokenIssuer
from credvault.services._shared.base import BaseService
from credvault.services._shared.errors import (
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    UploadError,
    ValidationError,
    violates,
)
from credvault.services._shared.ports import ObjectStore
from credvault.services.session.dto import (
    ChangePasswordIn,
    LoginIn,
    LoginOut,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
    UserPublicOut,
)

logger = logging.getLogger(__name__)

STALE_REFRESH_TOKEN = "Refresh token is expired or used"


def _clean(value: str | None) -> str:
    return value.strip() if isinstance(value, str) else ""


def _identity(user: User) -> AccessIdentity:
    return AccessIdentity(
        user_id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
    )


class SessionService(BaseService):
    """
    Register, authenticate and manage the refresh session of users.

    :param hasher: Password hasher used for every hash/verify.
    :type hasher: PasswordHasher
    :param tokens: Token issuer holding both signing secrets.
    :type tokens: TokenIssuer
    :param object_store: Asset store for avatar and cover uploads.
    :type object_store: ObjectStore
    :param revoke_on_password_change: Clear the stored refresh token when the
        password changes.
    :type revoke_on_password_change: bool
    """

    def __init__(
        self,
        *,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        object_store: ObjectStore,
        revoke_on_password_change: bool = False,
    ) -> None:
        self.hasher = hasher
        self.tokens = tokens
        self.object_store = object_store
        self.revoke_on_password_change = revoke_on_password_change

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> UserPublicOut:
        """
        Create a new account and return its public view.

        :raises ValidationError: Blank field or missing avatar.
        :raises ConflictError: Username or email already taken.
        :raises UploadError: The avatar could not be stored.
        :raises InternalError: The new record could not be read back.
        """
        try:
            full_name = _clean(dto.full_name)
            email = _clean(dto.email)
            username = _clean(dto.username)
            if not all((full_name, email, username, _clean(dto.password))):
                raise ValidationError("All fields are required")
            if not dto.avatar:
                raise ValidationError("Avatar file is required")
            username = normalize_username(username)

            with self.ro_uow() as uow:
                if uow.users.exists_by_username_or_email(username=username, email=email):
                    raise ConflictError("User", "User with email or username already exists")

            avatar = self.object_store.upload(dto.avatar)
            if avatar is None:
                raise UploadError("Avatar file could not be uploaded")

            cover_url: str | None = None
            if dto.cover_image:
                cover = self.object_store.upload(dto.cover_image)
                if cover is None:
                    logger.warning(
                        "Cover image upload failed; continuing without it",
                        extra={"event": "register.cover_upload_failed"},
                    )
                else:
                    cover_url = cover.url
        finally:
            self._discard_local_files(dto.avatar, dto.cover_image)

        password_hash = self.hasher.hash(dto.password)

        try:
            with self.rw_uow() as uow:
                user = uow.users.create(
                    username=username,
                    email=email,
                    full_name=full_name,
                    password_hash=password_hash,
                    avatar_url=avatar.url,
                    cover_image_url=cover_url,
                )
                user_id = user.id
        except IntegrityError as exc:
            if violates(exc, "uq_users_username"):
                raise ConflictError("User", "Username already exists") from exc
            if violates(exc, "uq_users_email"):
                raise ConflictError("User", "Email already exists") from exc
            raise ConflictError("User", "User with email or username already exists") from exc

        with self.ro_uow() as uow:
            created = uow.users.get(user_id)
            if created is None:
                raise InternalError("Something went wrong while registering the user")
            out = UserPublicOut.from_model(created)

        logger.info("User registered", extra={"event": "register", "user_id": out.id})
        return out

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Verify credentials and start a new session.

        The new refresh token overwrites any stored one, so a previous
        session stops being refreshable.

        :raises ValidationError: No username/email or no password.
        :raises NotFoundError: No account matches.
        :raises AuthError: Wrong password.
        """
        username = _clean(dto.username) or None
        email = _clean(dto.email) or None
        if not (username or email):
            raise ValidationError("Username or email is required")
        if not dto.password:
            raise ValidationError("Password is required")

        with self.ro_uow() as uow:
            user = uow.users.find_by_username_or_email(username=username, email=email)
            if user is not None:
                stored_hash = user.password_hash
                identity = _identity(user)
                public = UserPublicOut.from_model(user)

        if user is None:
            self.hasher.verify_decoy(dto.password)
            raise NotFoundError("User", username or email or "")

        if not self.hasher.verify(dto.password, stored_hash):
            logger.warning(
                "Rejected login: invalid credentials",
                extra={"event": "login.rejected", "user_id": identity.user_id},
            )
            raise AuthError("Invalid user credentials")

        rehashed = self.hasher.hash(dto.password) if self.hasher.needs_rehash(stored_hash) else None
        pair = self._issue_pair(identity)

        with self.rw_uow() as uow:
            if not uow.users.update_refresh_token(
                identity.user_id, expected=ANY_TOKEN, new=pair.refresh_token
            ):
                raise AuthError()
            if rehashed is not None:
                uow.users.update_password_hash(identity.user_id, rehashed)

        if rehashed is not None:
            logger.info(
                "Password hash upgraded",
                extra={"event": "login.rehash", "user_id": identity.user_id},
            )
        logger.info("User logged in", extra={"event": "login", "user_id": identity.user_id})
        return LoginOut(
            user=public,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Exchange the current refresh token for a new pair.

        :raises ValidationError: No token presented.
        :raises AuthError: Invalid, expired, superseded token or lost race.
        """
        presented = _clean(dto.refresh_token)
        if not presented:
            raise ValidationError("Refresh token is required")

        claims = self.tokens.verify_refresh_token(presented)

        with self.ro_uow() as uow:
            user = uow.users.get(claims.user_id)
            if user is None:
                raise AuthError("Invalid refresh token")
            stored = user.refresh_token or ""
            identity = _identity(user)

        if not hmac.compare_digest(stored.encode(), presented.encode()):
            logger.warning(
                "Rejected refresh: token superseded",
                extra={"event": "refresh.rejected", "user_id": claims.user_id},
            )
            raise AuthError(STALE_REFRESH_TOKEN)

        pair = self._issue_pair(identity)

        with self.rw_uow() as uow:
            swapped = uow.users.update_refresh_token(
                identity.user_id, expected=presented, new=pair.refresh_token
            )

        if not swapped:
            logger.warning(
                "Rejected refresh: concurrent rotation won",
                extra={"event": "refresh.race_lost", "user_id": identity.user_id},
            )
            raise AuthError(STALE_REFRESH_TOKEN)

        logger.info("Token pair rotated", extra={"event": "refresh", "user_id": identity.user_id})
        return pair

    def logout(self, user_id: int) -> None:
        with self.rw_uow() as uow:
            uow.users.update_refresh_token(user_id, expected=ANY_TOKEN, new=None)
        logger.info("User logged out", extra={"event": "logout", "user_id": user_id})

    # ------------------------------------------------------------------ #
    # Account
    # ------------------------------------------------------------------ #

    def change_password(self, dto: ChangePasswordIn) -> None:
        """
        Replace the password of an authenticated user.

        The stored refresh token survives unless ``revoke_on_password_change``
        is set.

        :raises ValidationError: Blank new password.
        :raises NotFoundError: User no longer exists.
        :raises AuthError: Old password does not verify.
        """
        if not _clean(dto.new_password):
            raise ValidationError("New password is required")

        with self.ro_uow() as uow:
            user = uow.users.get(dto.user_id)
            if user is None:
                raise NotFoundError("User", dto.user_id)
            stored_hash = user.password_hash

        if not self.hasher.verify(dto.old_password or "", stored_hash):
            raise AuthError("Invalid old password")

        new_hash = self.hasher.hash(dto.new_password)

        with self.rw_uow() as uow:
            if not uow.users.update_password_hash(dto.user_id, new_hash):
                raise NotFoundError("User", dto.user_id)
            if self.revoke_on_password_change:
                uow.users.update_refresh_token(dto.user_id, expected=ANY_TOKEN, new=None)

        logger.info(
            "Password changed", extra={"event": "change_password", "user_id": dto.user_id}
        )

    def get_current_user(self, user_id: int) -> UserPublicOut:
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserPublicOut.from_model(user)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _issue_pair(self, identity: AccessIdentity) -> TokenPairOut:
        return TokenPairOut(
            access_token=self.tokens.issue_access_token(identity),
            refresh_token=self.tokens.issue_refresh_token(identity.user_id),
        )

    @staticmethod
    def _discard_local_files(*paths: str | None) -> None:
        for raw in paths:
            if not raw:
                continue
            try:
                Path(raw).unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove temporary upload %s", raw, exc_info=True)
