"""Repository package exposing persistence-layer access for domain models."""

from __future__ import annotations

from credvault.repositories.base import BaseRepository
from credvault.repositories.user import UserRepository

__all__ = ["BaseRepository", "UserRepository"]
