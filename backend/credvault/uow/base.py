"""
Transaction boundary contract used by the session service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from credvault.repositories import UserRepository


class UnitOfWork(ABC):
    """
    One service step over the credential store.

    ``users`` is bound to the step's session. A clean exit commits a
    read-write step; read-only steps are always discarded.
    """

    users: UserRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...
