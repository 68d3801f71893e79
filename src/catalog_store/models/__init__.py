"""Pydantic models for configuration, statements, envelopes and entities."""

from .config import DatabaseConfig
from .entities import (
    Account,
    AccountCreate,
    AccountStats,
    AccountUpdate,
    Entry,
    EntryCreate,
    EntryUpdate,
    NotificationCreate,
    NotificationType,
    Platform,
    RatingSubmit,
    ReactionType,
    SuggestionCreate,
    SuggestionStatus,
)
from .query import CountResponse, ErrorKind, QueryError, QueryResponse, Statement

__all__ = [
    "DatabaseConfig",
    "Statement",
    "ErrorKind",
    "QueryError",
    "QueryResponse",
    "CountResponse",
    "Account",
    "AccountCreate",
    "AccountStats",
    "AccountUpdate",
    "Entry",
    "EntryCreate",
    "EntryUpdate",
    "NotificationCreate",
    "NotificationType",
    "Platform",
    "RatingSubmit",
    "ReactionType",
    "SuggestionCreate",
    "SuggestionStatus",
]
