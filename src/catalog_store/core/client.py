"""Fluent, table-oriented query interface with normalized result envelopes.

Usage::

    db = CatalogDatabase(connection)
    response = await db.table("games").select().order("created_at", ascending=False).execute()
    if response.error is not None:
        ...

Every terminal operation (``execute``, ``single``, ``maybe_single``,
``insert``, ``upsert``, ``update``, ``delete``, ``count``) returns a
``QueryResponse`` or ``CountResponse`` and never raises.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar, Union

from sqlalchemy.ext.asyncio import AsyncConnection

from catalog_store.core.builder import QueryBuilder
from catalog_store.core.connection import DatabaseConnection
from catalog_store.core.errors import classify_error
from catalog_store.core.executor import QueryExecutor, Rows
from catalog_store.models.query import (
    CountResponse,
    QueryError,
    QueryResponse,
    Statement,
)
from catalog_store.utils import convert_value_to_json_safe

logger = logging.getLogger(__name__)

T = TypeVar("T")
Record = dict[str, Any]


class TableQuery:
    """One query chain scoped to a single table."""

    def __init__(
        self,
        database: "CatalogDatabase",
        table: str,
        transaction: Optional["Transaction"] = None,
    ):
        self._database = database
        self._transaction = transaction
        self._builder = QueryBuilder(table)

    @property
    def table(self) -> str:
        return self._builder.table

    # ==================== Chain ====================

    def select(self, *fields: str) -> "TableQuery":
        """Choose the columns to read; no arguments means all columns."""
        self._builder.select(*fields)
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        self._builder.eq(column, value)
        return self

    def neq(self, column: str, value: Any) -> "TableQuery":
        self._builder.neq(column, value)
        return self

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        self._builder.order(column, ascending)
        return self

    def limit(self, count: int) -> "TableQuery":
        self._builder.limit(count)
        return self

    # ==================== Terminals ====================

    async def execute(self) -> QueryResponse:
        """Run the accumulated SELECT and return all matching rows."""
        try:
            rows = await self._run_one(self._builder.build_select())
        except Exception as e:
            return QueryResponse.failure(self._fail("select", e))
        return QueryResponse(data=rows)

    async def single(self) -> QueryResponse:
        """
        Run the accumulated SELECT and return the first row.

        Zero matching rows is not an error: data is None.
        """
        if self._builder.row_limit is None:
            self._builder.limit(1)
        response = await self.execute()
        if response.error is not None:
            return response
        return QueryResponse(data=response.data[0] if response.data else None)

    async def maybe_single(self) -> QueryResponse:
        """Same as ``single()``: both tolerate zero rows."""
        return await self.single()

    async def insert(self, records: Union[Record, Sequence[Record]]) -> QueryResponse:
        """
        Insert one record or a batch, one statement per record.

        A batch is not atomic unless ``atomic_batch_insert`` is configured or
        the chain belongs to a transaction: the first failing row stops the
        batch and earlier rows stay committed.

        Returns:
            The inserted row for a single record, or the rows in input order
        """
        single_record = isinstance(records, dict)
        batch = [records] if single_record else list(records)

        try:
            statements = [self._builder.build_insert(record) for record in batch]
            atomic = (
                len(statements) > 1
                and self._transaction is None
                and self._database.connection.config.atomic_batch_insert
            )
            if atomic:
                results = await self._database.executor.run_atomic(statements)
            else:
                results = await self._run(statements)
        except Exception as e:
            return QueryResponse.failure(self._fail("insert", e))

        rows = [result[0] if result else None for result in results]
        return QueryResponse(data=rows[0] if single_record else rows)

    async def upsert(self, record: Record, on_conflict: Sequence[str]) -> QueryResponse:
        """
        Insert a record, or update the existing row on a conflict.

        Relies on the store's ``ON CONFLICT`` clause; the conflict target must
        be backed by a unique constraint.
        """
        try:
            rows = await self._run_one(
                self._builder.build_insert(record, on_conflict=on_conflict)
            )
        except Exception as e:
            return QueryResponse.failure(self._fail("upsert", e))
        return QueryResponse(data=rows[0] if rows else None)

    async def update(self, values: Record) -> QueryResponse:
        """Set every given column on the filtered rows; returns affected rows."""
        try:
            rows = await self._run_one(self._builder.build_update(values))
        except Exception as e:
            return QueryResponse.failure(self._fail("update", e))
        return QueryResponse(data=rows)

    async def delete(self) -> QueryResponse:
        """Delete the filtered rows; zero matches is success."""
        try:
            await self._run_one(self._builder.build_delete())
        except Exception as e:
            return QueryResponse.failure(self._fail("delete", e))
        return QueryResponse(data=None)

    async def count(self) -> CountResponse:
        """Count the filtered rows."""
        try:
            rows = await self._run_one(self._builder.build_count())
        except Exception as e:
            return CountResponse(count=None, error=self._fail("count", e))
        return CountResponse(count=int(rows[0]["count"]) if rows else 0)

    # ==================== Internals ====================

    async def _run(self, statements: list[Statement]) -> list[Rows]:
        conn = self._transaction.conn if self._transaction is not None else None
        return await self._database.executor.run(statements, conn=conn)

    async def _run_one(self, statement: Statement) -> Rows:
        return (await self._run([statement]))[0]

    def _fail(self, action: str, exc: Exception) -> QueryError:
        return self._database._record_failure(
            f"{action} on {self.table}", exc, self._transaction
        )


class Transaction:
    """Statements issued through one open transaction."""

    def __init__(self, database: "CatalogDatabase", conn: AsyncConnection):
        self._database = database
        self.conn = conn
        self.error: Optional[QueryError] = None

    def table(self, name: str) -> TableQuery:
        return TableQuery(self._database, name, transaction=self)

    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResponse:
        return await self._database.query(sql, params, transaction=self)

    def record(self, error: QueryError) -> None:
        # The first failure decides the outcome; later ones are consequences
        if self.error is None:
            self.error = error


class _Rollback(Exception):
    def __init__(self, error: QueryError):
        super().__init__(error.message)
        self.error = error


class CatalogDatabase:
    """Entry point of the query layer over one connection pool."""

    def __init__(self, connection: DatabaseConnection):
        """
        Initialize the query layer.

        Args:
            connection: Initialized connection manager owning the pool
        """
        self.connection = connection
        self.executor = QueryExecutor(connection)

    @property
    def config(self):
        return self.connection.config

    def table(self, name: str) -> TableQuery:
        """Start a query chain on one table."""
        return TableQuery(self, name)

    async def query(
        self,
        sql: str,
        params: Sequence[Any] = (),
        transaction: Optional[Transaction] = None,
    ) -> QueryResponse:
        """
        Run a hand-written statement with $n placeholders.

        For joins and aggregates the chain cannot express.

        Returns:
            Envelope with the returned rows (empty list for no rows)
        """
        statement = Statement(sql=sql, params=list(params))
        conn = transaction.conn if transaction is not None else None
        try:
            results = await self.executor.run([statement], conn=conn)
        except Exception as e:
            return QueryResponse.failure(
                self._record_failure("raw query", e, transaction)
            )
        return QueryResponse(data=results[0])

    async def transaction(
        self, work: Callable[[Transaction], Awaitable[T]]
    ) -> QueryResponse:
        """
        Run ``work`` with statements sharing one connection and transaction.

        COMMIT happens when ``work`` returns and none of its statements
        reported an error; otherwise everything is rolled back.

        Args:
            work: Coroutine function receiving a Transaction

        Returns:
            Envelope whose data is the value ``work`` returned
        """
        try:
            async with self.connection.transaction() as conn:
                tx = Transaction(self, conn)
                result = await work(tx)
                if tx.error is not None:
                    raise _Rollback(tx.error)
        except _Rollback as rollback:
            logger.info("Transaction rolled back: %s", rollback.error.message)
            return QueryResponse.failure(rollback.error)
        except Exception as e:
            error = self._record_failure("transaction", e, None)
            return QueryResponse.failure(error)

        return QueryResponse(data=convert_value_to_json_safe(result))

    def _record_failure(
        self, context: str, exc: Exception, transaction: Optional[Transaction]
    ) -> QueryError:
        error = classify_error(exc)
        logger.warning("%s failed (%s): %s", context, error.kind.value, error.message)
        if transaction is not None:
            transaction.record(error)
        return error
