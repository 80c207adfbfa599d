"""Password hashing helpers built on Werkzeug's salted KDFs."""

from __future__ import annotations

import secrets

from werkzeug.security import check_password_hash, generate_password_hash

from credvault.services._shared.errors import InternalError

DEFAULT_METHOD = "scrypt:32768:8:1"


class HashingError(InternalError):
    """Raised when the hashing backend cannot produce a hash."""


class PasswordHasher:
    """Wrap Werkzeug hashing with an optional pepper and rehash checks.

    ``method`` must be a fully specified Werkzeug method string
    (``"scrypt:N:r:p"`` or ``"pbkdf2:<hash>:<iterations>"``) because the
    stored hash prefix is compared against it verbatim by :meth:`needs_rehash`.
    """

    def __init__(
        self,
        *,
        method: str = DEFAULT_METHOD,
        salt_length: int = 16,
        pepper: str = "",
    ) -> None:
        self.method = method
        self.salt_length = salt_length
        self._pepper = pepper or ""
        self._decoy_hash: str | None = None

    def hash(self, password: str) -> str:
        try:
            return generate_password_hash(
                self._with_pepper(password),
                method=self.method,
                salt_length=self.salt_length,
            )
        except (TypeError, ValueError) as exc:
            raise HashingError("Password hashing failed") from exc

    def verify(self, password: str, stored_hash: str) -> bool:
        if not stored_hash:
            return False
        try:
            return bool(check_password_hash(stored_hash, self._with_pepper(password)))
        except (TypeError, ValueError):
            # Unknown method or malformed stored hash
            return False

    def verify_decoy(self, password: str) -> bool:
        """Verify ``password`` against a throwaway hash and return ``False``.

        Lets a lookup miss spend the same KDF time as a wrong password.
        """
        if self._decoy_hash is None:
            self._decoy_hash = self.hash(secrets.token_urlsafe(16))
        self.verify(password, self._decoy_hash)
        return False

    def needs_rehash(self, stored_hash: str) -> bool:
        """Return ``True`` when ``stored_hash`` was produced with another method."""
        method, sep, _ = stored_hash.partition("$")
        return not sep or method != self.method

    def _with_pepper(self, password: str) -> str:
        return f"{password}{self._pepper}"
