"""Interfaces the dashboard consumes from the bookmark service."""
from collections.abc import AsyncGenerator
from typing import Protocol

from dashboard.models import Bookmark, RealtimeEvent


class BookmarkGateway(Protocol):
    """
    Persistence boundary.

    Implementations raise ``GatewayError`` for any failed request.
    """

    async def fetch_all(self) -> list[Bookmark]:
        """All of the user's bookmarks, newest first."""
        ...

    async def insert(self, title: str, url: str) -> Bookmark:
        """Create a bookmark and return the canonical record."""
        ...

    async def delete(self, bookmark_id: str, user_id: str) -> list[Bookmark]:
        """Delete by id and owner; return the rows actually removed."""
        ...


class ChangeSource(Protocol):
    """Realtime boundary: a push stream of row-level changes."""

    def changes(self) -> AsyncGenerator[RealtimeEvent]:
        """Open a subscription; closing the generator ends it."""
        ...


class IdentityProvider(Protocol):
    """Identity boundary: the core only needs a way to sign out."""

    def sign_out(self) -> str:
        """End the session and return the URL to navigate to."""
        ...
