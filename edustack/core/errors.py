# edustack/core/errors.py - Domain error taxonomy and database error translation
from typing import Any, Optional

from sqlalchemy.exc import (
    DataError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)


class AppError(Exception):
    """Base class for errors that map onto an HTTP response envelope"""

    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, data: Any = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.data = data
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid data sent"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "You are not authorized to perform this action"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Record not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflicting state"


class PersistenceError(AppError):
    status_code = 500
    default_message = "Database server error"


def translate_db_error(exc: SQLAlchemyError) -> PersistenceError:
    """
    Map a SQLAlchemy exception onto a PersistenceError.

    Constraint violations reflect a client mistake and become 4xx,
    connectivity and timeouts become 503, anything else is a 500.
    """
    if isinstance(exc, IntegrityError):
        detail = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
        if "unique" in detail or "duplicate key" in detail:
            return PersistenceError("Unique constraint violation", status_code=409)
        if "foreign key" in detail:
            return PersistenceError("Foreign key constraint failed", status_code=400)
        if "not null" in detail or "null value" in detail:
            return PersistenceError("Null constraint violation", status_code=400)
        return PersistenceError("A database constraint failed", status_code=400)

    if isinstance(exc, DataError):
        return PersistenceError("Invalid value provided for a column", status_code=400)

    if isinstance(exc, PoolTimeoutError):
        return PersistenceError("Operation timed out", status_code=503)

    if isinstance(exc, OperationalError):
        detail = str(exc).lower()
        if "timeout" in detail or "timed out" in detail:
            return PersistenceError("Operation timed out", status_code=503)
        return PersistenceError("Can't reach database server", status_code=503)

    return PersistenceError()
