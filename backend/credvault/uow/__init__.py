"""Units of work over the Flask-SQLAlchemy session.

``SQLAlchemyUnitOfWork`` commits a read-write step; ``SQLAlchemyReadOnlyUnitOfWork``
guards a read step against writes and always rolls it back.
"""

from .base import UnitOfWork
from .sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

__all__ = [
    "UnitOfWork",
    "SQLAlchemyUnitOfWork",
    "SQLAlchemyReadOnlyUnitOfWork",
]
