"""Client-side data types for bookmarks, users and realtime events."""
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator
from uuid6 import uuid7

# Speculative ids never collide with canonical ids, which are bare UUIDs
SPECULATIVE_ID_PREFIX = "optimistic-"


def new_speculative_id() -> str:
    """Generate a locally unique id for an entry the server has not confirmed."""
    return f"{SPECULATIVE_ID_PREFIX}{uuid7()}"


def is_speculative_id(bookmark_id: str) -> bool:
    """Check whether ``bookmark_id`` was generated locally."""
    return bookmark_id.startswith(SPECULATIVE_ID_PREFIX)


def _as_str(value: object) -> object:
    return str(value) if isinstance(value, UUID) else value


class Bookmark(BaseModel):
    """A bookmark as held by the dashboard, canonical or speculative."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str
    url: str
    created_at: datetime

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def coerce_uuid(cls, v: object) -> object:
        """Accept UUID objects and keep ids as strings."""
        return _as_str(v)

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC so ordering never mixes naive and aware values."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def is_speculative(self) -> bool:
        """Whether this entry is a local placeholder awaiting confirmation."""
        return is_speculative_id(self.id)


class UserProfile(BaseModel):
    """The authenticated user as returned by ``GET /users/me``."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    name: str | None = None
    avatar_url: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_uuid(cls, v: object) -> object:
        """Accept UUID objects and keep ids as strings."""
        return _as_str(v)


class RealtimeEvent(BaseModel):
    """A row-level change pushed by the realtime stream."""

    model_config = ConfigDict(frozen=True)

    table: str
    type: Literal["INSERT", "DELETE"]
    record: Bookmark
