"""Shared plumbing for entity repositories."""

from datetime import datetime, timezone
from typing import Any, Optional

from catalog_store.core.client import CatalogDatabase, TableQuery
from catalog_store.models.entities import Account
from catalog_store.models.query import QueryError, QueryResponse


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp as returned in rows; naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def first_row(response: QueryResponse) -> QueryResponse:
    """Collapse an update/delete row list to its first row."""
    if response.error is not None:
        return response
    return QueryResponse(data=response.data[0] if response.data else None)


class BaseRepository:
    """Base class binding a repository to one table of the query layer."""

    table: str = ""

    def __init__(self, db: CatalogDatabase):
        """
        Initialize repository.

        Args:
            db: Query layer to issue statements through
        """
        self.db = db

    def query(self) -> TableQuery:
        """Start a chain on this repository's table."""
        return self.db.table(self.table)

    def is_admin(self, actor: Optional[Account]) -> bool:
        return actor is not None and self.db.config.is_admin(actor.telegram_id)

    def require_admin(self, actor: Optional[Account], action: str) -> Optional[QueryResponse]:
        """Return a forbidden envelope unless ``actor`` is an administrator."""
        if self.is_admin(actor):
            return None
        return QueryResponse.failure(
            QueryError.forbidden(f"Only administrators may {action}")
        )
