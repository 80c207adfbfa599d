"""User repository: credential lookups and conditional token updates."""

from __future__ import annotations

from enum import Enum
from typing import Any, cast

from sqlalchemy import ColumnElement, or_, select, update

from credvault.models.user import User
from credvault.repositories.base import BaseRepository


class TokenMatch(Enum):
    """Sentinel for unconditional refresh-token writes."""

    ANY = "any"


#: Pass as ``expected`` to overwrite the stored token whatever its value.
ANY_TOKEN = TokenMatch.ANY


def normalize_username(username: str) -> str:
    return username.strip().lower()


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    Lookups normalize their keys the same way the model validators do
    (username trimmed and lowercased, email trimmed). Token and password
    writes are single ``UPDATE`` statements whose row count tells the caller
    whether the write happened, so concurrent callers cannot both succeed.
    This repository NEVER issues tokens or hashes passwords.
    """

    model = User

    # ---------------------------- Lookup helpers ----------------------------

    def _identity_clause(
        self, username: str | None, email: str | None
    ) -> ColumnElement[bool] | None:
        clauses: list[ColumnElement[bool]] = []
        if username and username.strip():
            clauses.append(User.username == normalize_username(username))
        if email and email.strip():
            clauses.append(User.email == email.strip())
        if not clauses:
            return None
        return or_(*clauses)

    def find_by_username_or_email(
        self, username: str | None = None, email: str | None = None
    ) -> User | None:
        """Fetch the user matching ``username`` OR ``email``.

        :param username: Candidate username (normalized before comparison).
        :type username: str | None
        :param email: Candidate email (trimmed before comparison).
        :type email: str | None
        :returns: Matching user, or ``None`` when nothing matches or no key was given.
        :rtype: User | None
        """
        clause = self._identity_clause(username, email)
        if clause is None:
            return None
        stmt = self._default_eagerload(select(User).where(clause).order_by(User.id))
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_username_or_email(
        self, username: str | None = None, email: str | None = None
    ) -> bool:
        clause = self._identity_clause(username, email)
        if clause is None:
            return False
        stmt = select(User.id).where(clause).limit(1)
        return self.session.execute(stmt).first() is not None

    # ------------------------------- Writes ---------------------------------

    def create(
        self,
        *,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
        avatar_url: str,
        cover_image_url: str | None = None,
    ) -> User:
        """Insert a new user and flush so its id is available.

        :raises sqlalchemy.exc.IntegrityError: On a unique-constraint violation.
        """
        user = User(
            username=username,
            email=email,
            full_name=full_name.strip(),
            password_hash=password_hash,
            avatar_url=avatar_url,
            cover_image_url=cover_image_url,
        )
        return self.add(user)

    def update_refresh_token(
        self,
        user_id: int,
        expected: str | None | TokenMatch = ANY_TOKEN,
        new: str | None = None,
    ) -> bool:
        """Replace the stored refresh token, optionally as a compare-and-swap.

        With ``expected`` set to a token (or ``None``), the write only happens
        when the stored value still equals it; the check and the write are one
        ``UPDATE ... WHERE id = :id AND refresh_token = :expected`` statement.
        With :data:`ANY_TOKEN` the write is unconditional.

        :param user_id: Target user id.
        :type user_id: int
        :param expected: Value the stored token must currently hold.
        :type expected: str | None | TokenMatch
        :param new: Token to store; ``None`` clears the session.
        :type new: str | None
        :returns: ``True`` when exactly one row was updated.
        :rtype: bool
        """
        criteria: list[ColumnElement[bool]] = [User.id == user_id]
        if expected is None:
            criteria.append(User.refresh_token.is_(None))
        elif not isinstance(expected, TokenMatch):
            criteria.append(User.refresh_token == expected)
        return self._update_one(criteria, refresh_token=new)

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        if not password_hash:
            raise ValueError("password_hash must be a non-empty string.")
        return self._update_one([User.id == user_id], password_hash=password_hash)

    def _update_one(self, criteria: list[ColumnElement[bool]], **values: Any) -> bool:
        stmt = (
            update(User)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        # Instances already loaded would otherwise keep the pre-update values.
        for instance in list(self.session.identity_map.values()):
            if isinstance(instance, User):
                self.session.expire(instance, list(values))
        return int(getattr(result, "rowcount", 0) or 0) == 1
