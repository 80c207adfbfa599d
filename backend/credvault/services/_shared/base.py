from __future__ import annotations

from http import HTTPStatus

from credvault.core import errors as api_errors
from credvault.services._shared.errors import (
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    UploadError,
    ValidationError,
)
from credvault.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - One Unit of Work per step: never keep one open across hashing, token
      signing or asset uploads.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param isolation: Transaction isolation level (e.g. "READ COMMITTED", "REPEATABLE READ").
        :type isolation: str | None
        :param enforce_db_readonly: Apply `SET TRANSACTION READ ONLY` when supported.
        :type enforce_db_readonly: bool
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, ValidationError):
            return api_errors.APIError(str(exc), HTTPStatus.BAD_REQUEST, "validation_error")

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        if isinstance(exc, AuthError):
            return api_errors.Unauthorized(str(exc) or "Unauthorized request")

        if isinstance(exc, UploadError):
            return api_errors.APIError(str(exc), HTTPStatus.BAD_REQUEST, "upload_failed")

        if isinstance(exc, InternalError):
            # Never leak storage/hashing details to clients
            return api_errors.APIError(
                "Internal error", HTTPStatus.INTERNAL_SERVER_ERROR, "internal_error"
            )

        if isinstance(exc, ServiceError):
            return api_errors.APIError(str(exc), HTTPStatus.BAD_REQUEST, "bad_request")

        return exc
