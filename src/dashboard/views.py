"""Render-ready view-models for the dashboard's list, items, and header."""
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote, urlsplit

from dashboard.confirmation import ConfirmationState
from dashboard.models import UserProfile
from dashboard.reconciler import BookmarkRow

APP_NAME = "Markd"
FAVICON_SERVICE_URL = "https://www.google.com/s2/favicons?sz=32&domain_url="


def get_domain(url: str) -> str:
    """Host of ``url`` without a leading ``www.``; the input itself if it has no host."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return url
    if not hostname:
        return url
    return hostname.removeprefix("www.")


def format_date(value: datetime) -> str:
    """Format like ``Oct 18, 2026``."""
    return f"{value:%b} {value.day}, {value.year}"


def favicon_url(url: str) -> str:
    return FAVICON_SERVICE_URL + quote(url, safe="")


def page_subtitle(count: int) -> str:
    """Line under the page heading summarizing how much is saved."""
    if count == 0:
        return "Nothing saved yet. Add your first link below."
    return f"{count} saved link{'' if count == 1 else 's'}"


@dataclass(frozen=True)
class BookmarkItemView:
    """One rendered bookmark row."""

    id: str
    title: str
    url: str
    domain: str
    favicon_url: str
    date_label: str | None
    status_label: str | None
    is_optimistic: bool
    can_delete: bool
    delete_label: str
    delete_hint: str
    error: str | None = None

    @classmethod
    def from_row(
        cls,
        row: BookmarkRow,
        confirmation_state: ConfirmationState = ConfirmationState.IDLE,
        error: str | None = None,
    ) -> "BookmarkItemView":
        """Build the item view; speculative rows show a pending marker instead of a date."""
        bookmark = row.bookmark
        confirming = confirmation_state is ConfirmationState.CONFIRMING
        return cls(
            id=bookmark.id,
            title=bookmark.title,
            url=bookmark.url,
            domain=get_domain(bookmark.url),
            favicon_url=favicon_url(bookmark.url),
            date_label=None if row.is_optimistic else format_date(bookmark.created_at),
            status_label="Saving…" if row.is_optimistic else None,
            is_optimistic=row.is_optimistic,
            can_delete=not row.is_optimistic,
            delete_label="Confirm delete" if confirming else "Delete bookmark",
            delete_hint="Click again to confirm" if confirming else "Delete",
            error=error,
        )


@dataclass(frozen=True)
class EmptyState:
    """Guidance shown in place of an empty list."""

    title: str
    message: str


NO_BOOKMARKS = EmptyState(
    title="No bookmarks yet",
    message="Add your first link above to get started",
)


def no_matches(query: str) -> EmptyState:
    return EmptyState(
        title=f'No bookmarks match "{query.strip()}"',
        message="Try a different search term",
    )


@dataclass(frozen=True)
class BookmarkListView:
    """The bookmark list section: a heading and items, or an empty state."""

    items: tuple[BookmarkItemView, ...]
    query: str = ""
    empty_state: EmptyState | None = None

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def heading(self) -> str | None:
        """Section heading, absent when there is nothing to list."""
        if not self.items:
            return None
        return f"Saved Bookmarks ({self.count})"


def build_list_view(
    rows: list[BookmarkRow],
    query: str = "",
    states: dict[str, ConfirmationState] | None = None,
    errors: dict[str, str] | None = None,
) -> BookmarkListView:
    """
    Build the list view from projected rows.

    An empty result under a non-blank ``query`` gets a no-matches state distinct
    from the empty-collection state.
    """
    states = states or {}
    errors = errors or {}
    items = tuple(
        BookmarkItemView.from_row(
            row,
            states.get(row.bookmark.id, ConfirmationState.IDLE),
            errors.get(row.bookmark.id),
        )
        for row in rows
    )
    empty_state = None
    if not items:
        empty_state = no_matches(query) if query.strip() else NO_BOOKMARKS
    return BookmarkListView(items=items, query=query, empty_state=empty_state)


@dataclass(frozen=True)
class HeaderView:
    """App header: name, signed-in user, and sign-out control."""

    app_name: str
    display_name: str
    initials: str
    avatar_url: str | None
    sign_out_label: str = "Sign out"

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "HeaderView":
        """Derive display name and initials, falling back to the email's local part."""
        display_name = (
            (profile.name or "").strip()
            or (profile.email or "").split("@")[0]
            or "User"
        )
        initials = "".join(part[0] for part in display_name.split()).upper()[:2]
        return cls(
            app_name=APP_NAME,
            display_name=display_name,
            initials=initials,
            avatar_url=profile.avatar_url,
        )
