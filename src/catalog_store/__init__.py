"""
catalog_store - query layer and repositories for a catalog/review application

A fluent, table-oriented query interface over a pooled PostgreSQL connection
that returns normalized ``{data, error}`` / ``{count, error}`` envelopes, plus
repositories for entries, accounts, ratings, reactions, favorites,
categories, notifications and suggestions.
"""

__version__ = "1.0.0"

from catalog_store.core import CatalogDatabase, DatabaseConnection, TableQuery, Transaction
from catalog_store.models.config import DatabaseConfig
from catalog_store.models.query import (
    CountResponse,
    ErrorKind,
    QueryError,
    QueryResponse,
    Statement,
)

__all__ = [
    "CatalogDatabase",
    "DatabaseConnection",
    "DatabaseConfig",
    "TableQuery",
    "Transaction",
    "Statement",
    "ErrorKind",
    "QueryError",
    "QueryResponse",
    "CountResponse",
]
