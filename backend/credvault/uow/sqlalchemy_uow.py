"""
Units of work over the Flask-scoped SQLAlchemy session.

Both share one ``users`` repository per step. The writer commits on a clean
exit; the reader guards its session against writes and always discards.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, scoped_session

from credvault.core.extensions import db
from credvault.repositories import UserRepository
from credvault.uow.base import UnitOfWork

logger = logging.getLogger(__name__)

_ISOLATION_LEVELS = ("READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE", "READ UNCOMMITTED")
_SET_TRANSACTION_DIALECTS = ("postgresql", "mysql", "mariadb")
_WRITE_VERBS = (
    "insert",
    "update",
    "delete",
    "merge",
    "replace",
    "create",
    "alter",
    "drop",
    "truncate",
    "grant",
    "revoke",
)


def _leading_verb(statement) -> str:
    sql = str(statement).lstrip()
    return sql.split(None, 1)[0].lower() if sql else ""


class _SessionStep(UnitOfWork):
    def __init__(self) -> None:
        self.session = db.session
        self.users = UserRepository(session=self.session)


class SQLAlchemyUnitOfWork(_SessionStep):
    """
    Read-write step: commit on a clean exit, roll back when the block raises.

    A failed registration or token swap therefore never leaves a partial write.
    """

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session autobegins on its first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(_SessionStep):
    """
    Read step that refuses writes and never commits.

    On PostgreSQL and MySQL/MariaDB the step opens its own transaction with
    ``SET TRANSACTION ISOLATION LEVEL`` and ``READ ONLY``. On every dialect,
    SQLite included, listeners on the thread's ``Session`` reject flushes of
    pending objects and DML/DDL issued through ``Session.execute``.

    When the session is already inside a transaction (autobegin or a test's
    outer transaction) the step joins it: listeners still apply, but no
    ``SET TRANSACTION`` is issued and nothing is rolled back on exit.

    Parameters
    ----------
    isolation_level:
        Isolation for an owned transaction. ``None`` keeps the connection default.
    enforce_db_readonly:
        Issue ``SET TRANSACTION READ ONLY`` on dialects that accept it.
    """

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__()
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly
        self._owns_txn = False
        self._guarded: Session | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        try:
            self.session.begin()
            self._owns_txn = True
        except InvalidRequestError:
            self._owns_txn = False

        self._guard()
        if self._owns_txn and self.session.get_bind().dialect.name in _SET_TRANSACTION_DIALECTS:
            self._set_transaction()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owns_txn:
                self._owns_txn = False
                self.session.rollback()
        finally:
            self._unguard()

    def commit(self) -> None:
        """:raises RuntimeError: always; read steps never persist anything."""
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    # -------------------- transaction directives --------------------

    def _set_transaction(self) -> None:
        try:
            if self.isolation_level:
                iso = self.isolation_level.upper().strip()
                if iso not in _ISOLATION_LEVELS:
                    logger.warning("Unknown isolation level %r, issuing it as-is", iso)
                self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {iso}"))
            if self.enforce_db_readonly:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
        except SQLAlchemyError as exc:
            logger.warning("SET TRANSACTION rejected (%s); relying on session guards", exc)

    # -------------------- write guards --------------------

    def _reject_flush(self, session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError("Read-only UnitOfWork: ORM flush blocked by pending changes.")

    def _reject_dml(self, orm_execute_state) -> None:
        verb = _leading_verb(orm_execute_state.statement)
        if verb.startswith(_WRITE_VERBS):
            raise RuntimeError(f"Read-only UnitOfWork: SQL statement blocked: {verb.upper()}")

    def _guard(self) -> None:
        if self._guarded is not None:
            return
        # Listen on this thread's Session, not on the shared scoped_session.
        target = self.session() if isinstance(self.session, scoped_session) else self.session
        event.listen(target, "before_flush", self._reject_flush)
        event.listen(target, "do_orm_execute", self._reject_dml)
        self._guarded = target

    def _unguard(self) -> None:
        if self._guarded is None:
            return
        target, self._guarded = self._guarded, None
        with suppress(InvalidRequestError):
            event.remove(target, "before_flush", self._reject_flush)
        with suppress(InvalidRequestError):
            event.remove(target, "do_orm_execute", self._reject_dml)
