"""Unit Tests for error classification"""

import asyncio

import pytest
from sqlalchemy import exc as sa_exc

from catalog_store.core.builder import InvalidIdentifierError
from catalog_store.core.errors import classify_error
from catalog_store.models.query import ErrorKind, QueryError


class DriverError(Exception):
    def __init__(self, message: str, sqlstate: str = None):
        super().__init__(message)
        self.sqlstate = sqlstate


def wrapped(cls, message: str, sqlstate: str = None, **kwargs):
    return cls("SELECT 1", {}, DriverError(message, sqlstate), **kwargs)


class TestClassification:
    """Test exception to ErrorKind mapping."""

    def test_builder_rejection_is_statement_error(self):
        error = classify_error(InvalidIdentifierError("Invalid identifier: 'a b'"))

        assert error.kind == ErrorKind.STATEMENT
        assert "a b" in error.message

    def test_pool_timeout(self):
        error = classify_error(sa_exc.TimeoutError("QueuePool limit reached"))

        assert error.kind == ErrorKind.CONNECTION
        assert error.message.startswith("Connection pool exhausted")

    def test_uninitialized_engine(self):
        error = classify_error(RuntimeError("DatabaseConnection not initialized."))

        assert error.kind == ErrorKind.CONNECTION

    @pytest.mark.parametrize(
        "exc",
        [ConnectionRefusedError("refused"), asyncio.TimeoutError(), OSError("unreachable")],
    )
    def test_network_failures(self, exc):
        error = classify_error(exc)

        assert error.kind == ErrorKind.CONNECTION
        assert error.message.startswith("Connection failed: ")
        assert error.message != "Connection failed: "

    def test_unique_violation(self):
        error = classify_error(
            wrapped(sa_exc.IntegrityError, "duplicate key value violates unique constraint", "23505")
        )

        assert error.kind == ErrorKind.STATEMENT
        assert error.code == "23505"
        assert error.is_unique_violation
        assert "duplicate key" in error.message

    def test_undefined_table(self):
        error = classify_error(
            wrapped(sa_exc.ProgrammingError, 'relation "game_suggestions" does not exist', "42P01")
        )

        assert error.kind == ErrorKind.STATEMENT
        assert error.is_undefined_table

    @pytest.mark.parametrize("sqlstate", ["08006", "28P01", "53300", "57P01"])
    def test_connection_sqlstates(self, sqlstate):
        error = classify_error(wrapped(sa_exc.DBAPIError, "server problem", sqlstate))

        assert error.kind == ErrorKind.CONNECTION
        assert error.code == sqlstate

    def test_invalidated_connection(self):
        error = classify_error(
            wrapped(sa_exc.DBAPIError, "connection lost", connection_invalidated=True)
        )

        assert error.kind == ErrorKind.CONNECTION

    def test_operational_error_without_code(self):
        error = classify_error(wrapped(sa_exc.OperationalError, "could not connect"))

        assert error.kind == ErrorKind.CONNECTION

    def test_sqlstate_from_cause(self):
        """asyncpg errors reach SQLAlchemy through an adapter that keeps the cause."""
        cause = DriverError("value too long", "22001")
        adapter_error = Exception("adapted")
        adapter_error.__cause__ = cause

        error = classify_error(sa_exc.DataError("INSERT", {}, adapter_error))

        assert error.kind == ErrorKind.STATEMENT
        assert error.code == "22001"

    def test_unknown(self):
        error = classify_error(KeyError("count"))

        assert error.kind == ErrorKind.UNKNOWN


class TestQueryError:
    """Test QueryError helpers."""

    def test_undefined_table_by_message(self):
        error = QueryError(
            kind=ErrorKind.STATEMENT, message='relation "x" does not exist'
        )

        assert error.is_undefined_table

    def test_constructors(self):
        assert QueryError.forbidden("no").kind == ErrorKind.FORBIDDEN
        assert QueryError.invalid("no").kind == ErrorKind.INVALID
