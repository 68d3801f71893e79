"""Per-entity repositories built on the query layer."""

from .accounts import AccountRepository
from .base import BaseRepository
from .categories import CategoryRepository
from .entries import EntryRepository
from .favorites import FavoriteRepository
from .notifications import NotificationRepository
from .ratings import RatingRepository, ReactionRepository, ReplyRepository
from .suggestions import SuggestionRepository

__all__ = [
    "AccountRepository",
    "BaseRepository",
    "CategoryRepository",
    "EntryRepository",
    "FavoriteRepository",
    "NotificationRepository",
    "RatingRepository",
    "ReactionRepository",
    "ReplyRepository",
    "SuggestionRepository",
]
