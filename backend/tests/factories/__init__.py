"""Factory Boy base wired to ``db.session``.

The autouse ``session`` fixture swaps ``db.session`` for a scoped session bound
to the per-test outer transaction, so factory rows vanish with the test.
"""

from __future__ import annotations

import factory

from credvault.core.extensions import db


def current_session():
    return db.session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        abstract = True
        sqlalchemy_session_factory = current_session
        sqlalchemy_session_persistence = "flush"
