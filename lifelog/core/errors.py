"""
Standardized error classification for Lifelog.

Every failure raised by the event layer is a ``LifelogError`` carrying an
``ErrorInfo``. The HTTP layer turns it into the response envelope without
brittle string matching:

    try:
        await service.get_event(event_id)
    except NotFoundError as err:
        err.info.kind == ErrorKind.NOT_FOUND
        err.http_status == 404

Layers add their own operation name on the way out:

    except LifelogError as err:
        raise err.wrap("create_event") from err
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Standardized error categories."""

    NOT_FOUND = "not_found"         # No row matches the requested external ID
    SCHEMA = "schema"               # Input validation, type mismatch

    # Database errors
    DB_CONNECTION = "db_connection" # Database connection failure
    DB_CONSTRAINT = "db_constraint" # Unique constraint, foreign key
    DB_DEADLOCK = "db_deadlock"     # Transaction deadlock / serialization
    DB_TIMEOUT = "db_timeout"       # Query or operation timeout
    DB_INTEGRITY = "db_integrity"   # Stored data breaks an invariant

    UNKNOWN = "unknown"


class ErrorInfo(BaseModel):
    """Standardized error object attached to every LifelogError."""

    kind: ErrorKind = Field(
        default=ErrorKind.UNKNOWN,
        description="Error category"
    )
    retryable: bool = Field(
        default=False,
        description="Whether this error is worth retrying by the caller"
    )
    code: str = Field(
        default="UNKNOWN",
        description="Error code (PG_23505, NOT_FOUND, ...)"
    )
    message: str = Field(
        default="Unknown error",
        description="Human-readable error message"
    )
    source: str = Field(
        default="lifelog",
        description="Component that produced this error"
    )
    pg_code: Optional[str] = Field(
        None, description="PostgreSQL error code (e.g., 23505, 40P01)"
    )
    exception_type: Optional[str] = Field(
        None, description="Python exception class name of the root cause"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Optional extra context (validation errors, ids, ...)"
    )

    def to_dict(self) -> dict[str, Any]:
        d = {
            "kind": self.kind.value,
            "retryable": self.retryable,
            "code": self.code,
            "message": self.message,
            "source": self.source,
        }
        if self.pg_code is not None:
            d["pg_code"] = self.pg_code
        if self.exception_type is not None:
            d["exception_type"] = self.exception_type
        if self.details:
            d["details"] = self.details
        return d


# =============================================================================
# Exceptions
# =============================================================================

class LifelogError(Exception):
    """Base error: a message prefixed by the failing operations plus ErrorInfo."""

    default_kind = ErrorKind.UNKNOWN
    http_status = 500

    def __init__(self, message: str, info: Optional[ErrorInfo] = None):
        super().__init__(message)
        self.message = message
        if info is None:
            info = ErrorInfo(kind=self.default_kind, code=self.default_kind.name, message=message)
        self.info = info

    def wrap(self, operation: str) -> "LifelogError":
        """Return an error of the same class with ``operation`` prepended to the message."""
        message = f"{operation}: {self.message}"
        return type(self)(message, info=self.info.model_copy(update={"message": message}))

    def __str__(self) -> str:
        return self.message


class StorageError(LifelogError):
    """Connection, query or constraint failure in the relational store."""

    default_kind = ErrorKind.UNKNOWN

    @property
    def http_status(self) -> int:
        if self.info.kind == ErrorKind.DB_CONNECTION:
            return 503
        if self.info.kind == ErrorKind.DB_TIMEOUT:
            return 504
        return 500

    @classmethod
    def from_exception(cls, operation: str, error: BaseException) -> "StorageError":
        info = classify_postgres_error(error)
        message = f"{operation}: {error}"
        info = info.model_copy(update={"message": message})
        if info.kind == ErrorKind.DB_CONSTRAINT:
            return ConstraintViolationError(message, info=info)
        return cls(message, info=info)


class ConstraintViolationError(StorageError):
    """Unique or foreign key violation reported by the store."""

    default_kind = ErrorKind.DB_CONSTRAINT


class NotFoundError(LifelogError):
    """No row matches the requested external ID."""

    default_kind = ErrorKind.NOT_FOUND
    http_status = 404


class ValidationError(LifelogError):
    """Malformed event input."""

    default_kind = ErrorKind.SCHEMA
    http_status = 422


# =============================================================================
# Classification
# =============================================================================

def classify_postgres_error(
    error: BaseException,
    error_code: Optional[str] = None,
) -> ErrorInfo:
    """Classify PostgreSQL / psycopg errors."""
    error_str = str(error).lower()
    error_type = type(error).__name__

    pg_code = error_code
    if not pg_code:
        pg_code = getattr(error, "sqlstate", None) or getattr(error, "pgcode", None)

    code = f"PG_{pg_code}" if pg_code else "PG_UNKNOWN"

    def _info(kind: ErrorKind, retryable: bool) -> ErrorInfo:
        return ErrorInfo(
            kind=kind,
            retryable=retryable,
            code=code,
            message=str(error),
            source="postgres",
            pg_code=pg_code,
            exception_type=error_type,
        )

    # The server's SQLSTATE is authoritative. Message text also carries the
    # offending key values (DETAIL: Key (value)=(...)), so it is only
    # consulted when the driver reports no code.
    if pg_code:
        if pg_code.startswith("23"):
            return _info(ErrorKind.DB_CONSTRAINT, False)
        if pg_code in ("40001", "40P01"):
            return _info(ErrorKind.DB_DEADLOCK, True)
        if pg_code == "57014":
            return _info(ErrorKind.DB_TIMEOUT, True)
        if pg_code.startswith("08") or pg_code in ("57P01", "57P02", "57P03"):
            return _info(ErrorKind.DB_CONNECTION, True)
        return _info(ErrorKind.UNKNOWN, False)

    if "unique" in error_str or "duplicate key" in error_str:
        return _info(ErrorKind.DB_CONSTRAINT, False)

    if "deadlock" in error_str:
        return _info(ErrorKind.DB_DEADLOCK, True)

    if "timeout" in error_str or "canceling statement" in error_str:
        return _info(ErrorKind.DB_TIMEOUT, True)

    if "connection" in error_str or "pool" in error_str:
        return _info(ErrorKind.DB_CONNECTION, True)

    return _info(ErrorKind.UNKNOWN, False)


__all__ = [
    "ErrorKind",
    "ErrorInfo",
    "LifelogError",
    "StorageError",
    "ConstraintViolationError",
    "NotFoundError",
    "ValidationError",
    "classify_postgres_error",
]
