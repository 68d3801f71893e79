"""Catalog entity models.

Row models mirror the tables as returned by the query layer (identifiers and
timestamps arrive as strings after JSON-safe conversion). Create/update models
validate write payloads before they reach the builder.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Platform(str, Enum):
    """Primary platform tags."""

    ANDROID = "Android"
    WINDOWS = "Windows"


class ReactionType(str, Enum):
    """Binary vote on a rating."""

    LIKE = "like"
    DISLIKE = "dislike"


class SuggestionStatus(str, Enum):
    """Suggestion review state."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    """Notification kind tags written by the repositories."""

    REVIEW_SUBMITTED = "review_submitted"
    REPLY_RECEIVED = "reply_received"


def _write_payload(model: BaseModel) -> dict[str, Any]:
    """Dump only the fields the caller set, with enums as plain values."""
    return model.model_dump(mode="json", exclude_unset=True)


# ==================== Entries ====================


class Entry(BaseModel):
    """A cataloged item (``games`` table)."""

    # Joined queries add columns such as favorite_id
    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    description_en: str = ""
    description_ru: str = ""
    cover_url: str = ""
    download_link: str = ""
    platform: str
    platforms: Optional[list[str]] = None
    genres: Optional[list[str]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="after")
    def fill_platforms(self) -> "Entry":
        # Legacy rows carry only the primary platform
        if not self.platforms:
            self.platforms = [self.platform]
        if self.genres is None:
            self.genres = []
        return self


class EntryCreate(BaseModel):
    """Payload for a new entry."""

    title: str = Field(..., min_length=1)
    description_en: str = ""
    description_ru: str = ""
    cover_url: str = ""
    download_link: str = ""
    platform: Optional[Platform] = None
    platforms: list[Platform] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def sync_platforms(self) -> "EntryCreate":
        if self.platforms:
            self.platform = self.platforms[0]
        elif self.platform is not None:
            self.platforms = [self.platform]
        else:
            raise ValueError("platform or platforms must be given")
        return self

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class EntryUpdate(BaseModel):
    """Partial entry update."""

    title: Optional[str] = Field(None, min_length=1)
    description_en: Optional[str] = None
    description_ru: Optional[str] = None
    cover_url: Optional[str] = None
    download_link: Optional[str] = None
    platforms: Optional[list[Platform]] = None
    genres: Optional[list[str]] = None

    @field_validator("platforms")
    @classmethod
    def non_empty_platforms(cls, v: Optional[list[Platform]]) -> Optional[list[Platform]]:
        if v is not None and not v:
            raise ValueError("platforms must not be empty")
        return v

    def to_record(self) -> dict[str, Any]:
        record = _write_payload(self)
        if record.get("platforms"):
            record["platform"] = record["platforms"][0]
        return record


# ==================== Accounts ====================


class Account(BaseModel):
    """A user identified by the chat platform (``users`` table)."""

    id: str
    telegram_id: int
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    avatar_url: str = ""
    language: str = "en"
    created_at: Optional[str] = None


class AccountCreate(BaseModel):
    telegram_id: int
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    avatar_url: str = ""
    language: str = "en"

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class AccountUpdate(BaseModel):
    """Profile fields an account may change; the external id is not one of them."""

    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    language: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return _write_payload(self)


class AccountStats(BaseModel):
    total_reviews: int = 0
    average_rating: float = 0.0
    total_favorites: int = 0


# ==================== Ratings ====================


class RatingSubmit(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


# ==================== Notifications ====================


class NotificationCreate(BaseModel):
    user_id: str
    type: str = Field(..., min_length=1)
    title: str
    message: str
    game_title: Optional[str] = None
    from_user: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# ==================== Suggestions ====================


class SuggestionCreate(BaseModel):
    game_title: str = Field(..., min_length=1)
    description: str = ""
