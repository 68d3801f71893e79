"""Statement, error and result envelope models."""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

# Quoted literals and identifiers match first so markers inside them are kept
_POSITIONAL = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|\$(\d+)")
_COLON_WORD = re.compile(r":(?=\w)")

UNDEFINED_TABLE = "42P01"
UNIQUE_VIOLATION = "23505"


def _to_named_bind(match: "re.Match[str]") -> str:
    if match.group(1) is None:
        # Escaped so text() does not read :word inside a literal as a bind
        return _COLON_WORD.sub(r"\\:", match.group(0))
    return f":p{match.group(1)}"


class Statement(BaseModel):
    """One parameterized SQL statement with $n positional markers."""

    sql: str = Field(..., description="SQL text using $1..$n placeholders")
    params: list[Any] = Field(
        default_factory=list, description="Positional parameter values"
    )

    @property
    def bind_params(self) -> dict[str, Any]:
        """Parameters keyed by the named binds used in ``text_sql``."""
        return {f"p{i}": value for i, value in enumerate(self.params, start=1)}

    @property
    def text_sql(self) -> str:
        """SQL with $n markers rewritten to SQLAlchemy :pN binds."""
        return _POSITIONAL.sub(_to_named_bind, self.sql)


class ErrorKind(str, Enum):
    """Classification of a failed operation."""

    CONNECTION = "connection"
    STATEMENT = "statement"
    FORBIDDEN = "forbidden"
    INVALID = "invalid"
    UNKNOWN = "unknown"


class QueryError(BaseModel):
    """Structured error carried in a result envelope."""

    kind: ErrorKind = Field(..., description="Error classification")
    message: str = Field(..., description="Human-readable message")
    code: Optional[str] = Field(None, description="SQLSTATE code if available")

    @property
    def is_undefined_table(self) -> bool:
        """Check whether the error reports a missing relation."""
        if self.code == UNDEFINED_TABLE:
            return True
        return "does not exist" in self.message and "relation" in self.message

    @property
    def is_unique_violation(self) -> bool:
        """Check whether the error reports a duplicate key."""
        return self.code == UNIQUE_VIOLATION

    @classmethod
    def forbidden(cls, message: str) -> "QueryError":
        return cls(kind=ErrorKind.FORBIDDEN, message=message)

    @classmethod
    def invalid(cls, message: str) -> "QueryError":
        return cls(kind=ErrorKind.INVALID, message=message)


class QueryResponse(BaseModel):
    """Normalized ``{data, error}`` envelope."""

    data: Any = Field(None, description="Row, list of rows, or None")
    error: Optional[QueryError] = Field(None, description="Error if failed")

    @property
    def ok(self) -> bool:
        """Check whether the operation succeeded."""
        return self.error is None

    @classmethod
    def failure(cls, error: QueryError) -> "QueryResponse":
        return cls(data=None, error=error)


class CountResponse(BaseModel):
    """Normalized ``{count, error}`` envelope."""

    count: Optional[int] = Field(None, description="Row count")
    error: Optional[QueryError] = Field(None, description="Error if failed")

    @property
    def ok(self) -> bool:
        """Check whether the operation succeeded."""
        return self.error is None
