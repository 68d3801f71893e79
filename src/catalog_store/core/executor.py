"""Statement execution against pooled connections."""

import logging
import time
from typing import Any, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from catalog_store.core.connection import DatabaseConnection
from catalog_store.models.query import Statement
from catalog_store.utils import convert_rows_to_json_safe

logger = logging.getLogger(__name__)

Rows = list[dict[str, Any]]


class QueryExecutor:
    """Runs built statements and returns JSON-safe rows.

    Failures propagate as exceptions; turning them into envelopes is the job
    of the query chain.
    """

    def __init__(self, connection: DatabaseConnection):
        """
        Initialize query executor.

        Args:
            connection: Database connection manager
        """
        self.connection = connection

    async def run(
        self,
        statements: Sequence[Statement],
        conn: Optional[AsyncConnection] = None,
    ) -> list[Rows]:
        """
        Execute statements in order on one connection.

        Without ``conn`` a pooled autocommit connection is acquired for the
        whole sequence, so each statement commits on its own and the first
        failure leaves earlier statements committed.

        Args:
            statements: Statements to execute
            conn: Connection of an open transaction to run on instead

        Returns:
            Returned rows per statement (empty for statements without RETURNING)
        """
        if conn is not None:
            return [await self._execute(conn, statement) for statement in statements]

        async with self.connection.get_connection() as pooled:
            return [await self._execute(pooled, statement) for statement in statements]

    async def run_atomic(self, statements: Sequence[Statement]) -> list[Rows]:
        """Execute statements in order inside one transaction."""
        async with self.connection.transaction() as conn:
            return [await self._execute(conn, statement) for statement in statements]

    async def _execute(self, conn: AsyncConnection, statement: Statement) -> Rows:
        start_time = time.time()

        result = await conn.execute(text(statement.text_sql), statement.bind_params)

        rows: Rows = []
        if result.returns_rows:
            columns = list(result.keys())
            rows = [dict(zip(columns, row)) for row in result.fetchall()]
            rows = convert_rows_to_json_safe(rows)

        logger.debug(
            "%s -> %d rows in %.1f ms",
            statement.sql,
            len(rows),
            (time.time() - start_time) * 1000,
        )
        return rows
