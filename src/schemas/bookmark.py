"""Pydantic schemas for bookmark endpoints."""
from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.validators import validate_title, validate_url


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark."""

    title: str
    url: str

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Trim and require a title."""
        return validate_title(v)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Normalize and validate the URL."""
        return validate_url(v)


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    url: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """
        Attach UTC to naive timestamps.

        Some dialects (SQLite) drop the offset on read; clients compare these
        values and must never receive a mix of naive and aware datetimes.
        """
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class BookmarkDeleteResponse(BaseModel):
    """
    Rows removed by a delete.

    An empty list means nothing matched the id and owner, which clients treat
    as a failed delete rather than a silent success.
    """

    deleted: list[BookmarkResponse]
