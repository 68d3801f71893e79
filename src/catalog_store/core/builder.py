"""SQL assembly for one table-scoped operation."""

import re
from typing import Any, Optional, Sequence

from catalog_store.models.query import Statement

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class InvalidIdentifierError(ValueError):
    """Raised when a table or column name is not a plain SQL identifier."""


def check_identifier(name: str) -> str:
    """
    Validate a table or column name.

    Identifiers are interpolated into SQL text, so only plain names are
    accepted; values always travel as bound parameters.

    Raises:
        InvalidIdentifierError: If the name is not a plain identifier
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise InvalidIdentifierError(f"Invalid identifier: {name!r}")
    return name


class QueryBuilder:
    """Accumulates filters, ordering and limit for one table.

    Filters are AND-ed in call order. Only one ORDER BY column is kept; the
    last ``order()`` call wins.
    """

    def __init__(self, table: str):
        self.table = table
        self.fields: list[str] = []
        self.filters: list[tuple[str, str, Any]] = []
        self.ordering: Optional[tuple[str, bool]] = None
        self.row_limit: Optional[int] = None

    def select(self, *fields: str) -> "QueryBuilder":
        self.fields = list(fields)
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        self.filters.append((column, "=", value))
        return self

    def neq(self, column: str, value: Any) -> "QueryBuilder":
        self.filters.append((column, "<>", value))
        return self

    def order(self, column: str, ascending: bool = True) -> "QueryBuilder":
        self.ordering = (column, ascending)
        return self

    def limit(self, count: int) -> "QueryBuilder":
        # Checked when the statement is built
        self.row_limit = count
        return self

    # ==================== SQL assembly ====================

    def _where(self, start: int) -> tuple[str, list[Any]]:
        """
        Render accumulated filters.

        Args:
            start: Number of the first placeholder to use

        Returns:
            Tuple of (" WHERE ..." or "", parameter values)
        """
        if not self.filters:
            return "", []

        conditions = []
        params = []
        for column, op, value in self.filters:
            check_identifier(column)
            if value is None:
                # "= NULL" never matches; use the IS form
                conditions.append(
                    f"{column} IS NULL" if op == "=" else f"{column} IS NOT NULL"
                )
                continue
            params.append(value)
            conditions.append(f"{column} {op} ${start + len(params) - 1}")
        return " WHERE " + " AND ".join(conditions), params

    def build_select(self) -> Statement:
        table = check_identifier(self.table)
        if self.fields and self.fields != ["*"]:
            columns = ", ".join(check_identifier(f) for f in self.fields)
        else:
            columns = "*"

        where, params = self._where(1)
        sql = f"SELECT {columns} FROM {table}{where}"

        if self.ordering is not None:
            column, ascending = self.ordering
            sql += f" ORDER BY {check_identifier(column)} {'ASC' if ascending else 'DESC'}"
        if self.row_limit is not None:
            if not isinstance(self.row_limit, int) or self.row_limit < 0:
                raise ValueError(f"limit must be a non-negative integer: {self.row_limit!r}")
            sql += f" LIMIT {self.row_limit}"

        return Statement(sql=sql, params=params)

    def build_count(self) -> Statement:
        table = check_identifier(self.table)
        where, params = self._where(1)
        return Statement(sql=f"SELECT COUNT(*) AS count FROM {table}{where}", params=params)

    def build_insert(
        self,
        record: dict[str, Any],
        on_conflict: Optional[Sequence[str]] = None,
    ) -> Statement:
        """
        Build an INSERT ... RETURNING * for one record.

        Args:
            record: Column values
            on_conflict: Conflict target columns; when given, conflicting rows
                are updated with the new values of the remaining columns

        Returns:
            Statement
        """
        table = check_identifier(self.table)
        if not record:
            raise ValueError("Cannot insert an empty record")

        columns = [check_identifier(c) for c in record]
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        if on_conflict:
            keys = [check_identifier(c) for c in on_conflict]
            updates = [c for c in columns if c not in keys]
            if updates:
                assignments = ", ".join(f"{c} = EXCLUDED.{c}" for c in updates)
                sql += f" ON CONFLICT ({', '.join(keys)}) DO UPDATE SET {assignments}"
            else:
                sql += f" ON CONFLICT ({', '.join(keys)}) DO NOTHING"

        sql += " RETURNING *"
        return Statement(sql=sql, params=list(record.values()))

    def build_update(self, values: dict[str, Any]) -> Statement:
        """
        Build an UPDATE ... RETURNING * restricted to the accumulated filters.

        SET placeholders are numbered first; WHERE placeholders continue right
        after them.
        """
        table = check_identifier(self.table)
        if not values:
            raise ValueError("Cannot update with an empty record")

        assignments = []
        params = []
        for index, (column, value) in enumerate(values.items(), start=1):
            assignments.append(f"{check_identifier(column)} = ${index}")
            params.append(value)

        where, where_params = self._where(len(params) + 1)
        sql = f"UPDATE {table} SET {', '.join(assignments)}{where} RETURNING *"
        return Statement(sql=sql, params=params + where_params)

    def build_delete(self) -> Statement:
        table = check_identifier(self.table)
        where, params = self._where(1)
        return Statement(sql=f"DELETE FROM {table}{where}", params=params)
