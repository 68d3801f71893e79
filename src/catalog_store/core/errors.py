"""Classification of driver and pool failures into QueryError."""

import asyncio
from typing import Optional

from sqlalchemy import exc as sa_exc

from catalog_store.models.query import ErrorKind, QueryError

# SQLSTATE classes that describe the connection rather than the statement
_CONNECTION_SQLSTATE_CLASSES = ("08", "28", "53", "57")


def _sqlstate(exc: BaseException) -> Optional[str]:
    """Dig the SQLSTATE out of a wrapped driver exception."""
    candidates = [exc, getattr(exc, "orig", None)]
    orig = getattr(exc, "orig", None)
    if orig is not None:
        candidates.append(getattr(orig, "__cause__", None))

    for candidate in candidates:
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            code = getattr(candidate, attr, None)
            if isinstance(code, str) and code:
                return code
    return None


def _message(exc: BaseException) -> str:
    orig = getattr(exc, "orig", None)
    text = str(orig) if orig is not None else str(exc)
    return text.strip() or type(exc).__name__


def classify_error(exc: BaseException) -> QueryError:
    """
    Convert an exception raised while executing a statement into a QueryError.

    Args:
        exc: Exception from the pool, the driver or the builder

    Returns:
        Structured error with kind, message and SQLSTATE code when known
    """
    # Builder rejections: bad identifiers, empty records
    if isinstance(exc, ValueError):
        return QueryError(kind=ErrorKind.STATEMENT, message=str(exc))

    if isinstance(exc, sa_exc.TimeoutError):
        return QueryError(
            kind=ErrorKind.CONNECTION,
            message=f"Connection pool exhausted: {exc}",
        )

    if isinstance(exc, RuntimeError) and "not initialized" in str(exc):
        return QueryError(kind=ErrorKind.CONNECTION, message=str(exc))

    if isinstance(exc, (asyncio.TimeoutError, OSError)):
        return QueryError(
            kind=ErrorKind.CONNECTION,
            message=f"Connection failed: {str(exc) or type(exc).__name__}",
        )

    if isinstance(exc, sa_exc.DBAPIError):
        code = _sqlstate(exc)
        message = _message(exc)
        connection_problem = (
            exc.connection_invalidated
            or isinstance(exc, sa_exc.InterfaceError)
            or (code is not None and code.startswith(_CONNECTION_SQLSTATE_CLASSES))
            or (code is None and isinstance(exc, sa_exc.OperationalError))
        )
        if connection_problem:
            return QueryError(kind=ErrorKind.CONNECTION, message=message, code=code)
        return QueryError(kind=ErrorKind.STATEMENT, message=message, code=code)

    if isinstance(exc, sa_exc.SQLAlchemyError):
        return QueryError(kind=ErrorKind.STATEMENT, message=str(exc))

    return QueryError(
        kind=ErrorKind.UNKNOWN,
        message=str(exc) or type(exc).__name__,
        code=_sqlstate(exc),
    )
