"""Core query layer: connection pool, SQL assembly, execution and chains."""

from .builder import InvalidIdentifierError, QueryBuilder, check_identifier
from .client import CatalogDatabase, TableQuery, Transaction
from .connection import DatabaseConnection
from .errors import classify_error
from .executor import QueryExecutor

__all__ = [
    "CatalogDatabase",
    "DatabaseConnection",
    "InvalidIdentifierError",
    "QueryBuilder",
    "QueryExecutor",
    "TableQuery",
    "Transaction",
    "check_identifier",
    "classify_error",
]
