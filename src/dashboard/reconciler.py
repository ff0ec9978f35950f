"""
Optimistic reconciliation of local mutations with authoritative state.

State is kept as two explicit collections:

- ``authoritative``: bookmarks the server has confirmed, newest first. Changed
  only by confirmed mutations and realtime pushes.
- ``pending``: in-flight operations keyed by id. Adds are keyed by their
  speculative id, deletes by the canonical id of the bookmark being removed.

What the user sees is always ``project(authoritative, pending, query)``, a pure
function of the two. Every transition method is idempotent and reports whether
it changed anything, so a late or duplicate outcome is harmless.
"""
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from types import MappingProxyType

from dashboard.models import Bookmark, new_speculative_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingAdd:
    """
    An add awaiting server confirmation; ``bookmark`` is the speculative entry.

    ``delivered`` is set when a realtime push already brought a matching
    canonical record, so the speculative entry is no longer shown.
    """

    bookmark: Bookmark
    delivered: bool = False

    def matches(self, canonical: Bookmark) -> bool:
        """Whether ``canonical`` looks like the server's copy of this add."""
        speculative = self.bookmark
        return (
            canonical.user_id == speculative.user_id
            and canonical.title == speculative.title
            and canonical.url == speculative.url
        )


@dataclass(frozen=True)
class PendingDelete:
    """A delete awaiting server confirmation; ``original`` is restored on failure."""

    original: Bookmark


PendingOperation = PendingAdd | PendingDelete


@dataclass(frozen=True)
class BookmarkRow:
    """One visible row of the projected list."""

    bookmark: Bookmark
    is_optimistic: bool


def sort_newest_first(bookmarks: Iterable[Bookmark]) -> list[Bookmark]:
    """Order by creation time, newest first."""
    return sorted(bookmarks, key=lambda b: b.created_at, reverse=True)


def matches_query(bookmark: Bookmark, query: str) -> bool:
    """Case-insensitive substring match over title and URL."""
    needle = query.strip().lower()
    if not needle:
        return True
    return needle in bookmark.title.lower() or needle in bookmark.url.lower()


def project(
    authoritative: Sequence[Bookmark],
    pending: Mapping[str, PendingOperation],
    query: str = "",
) -> list[BookmarkRow]:
    """
    Merge authoritative bookmarks with pending operations into visible rows.

    Speculative adds come first, most recent first, unless a push already
    delivered their canonical record. Bookmarks with a pending delete are
    hidden. A non-blank ``query`` filters the result.
    """
    adds = [
        op.bookmark
        for op in pending.values()
        if isinstance(op, PendingAdd) and not op.delivered
    ]
    hidden = {key for key, op in pending.items() if isinstance(op, PendingDelete)}

    rows = [BookmarkRow(bookmark=b, is_optimistic=True) for b in reversed(adds)]
    rows.extend(
        BookmarkRow(bookmark=b, is_optimistic=False)
        for b in authoritative
        if b.id not in hidden
    )
    return [row for row in rows if matches_query(row.bookmark, query)]


class OptimisticReconciler:
    """Owns the authoritative collection and the pending-operation overlay."""

    def __init__(self, authoritative: Iterable[Bookmark] = ()) -> None:
        self._authoritative: list[Bookmark] = list(authoritative)
        self._pending: dict[str, PendingOperation] = {}
        # Pending deletes whose row a realtime push already removed
        self._pushed_deletes: set[str] = set()

    @property
    def authoritative(self) -> tuple[Bookmark, ...]:
        """Confirmed bookmarks, newest first."""
        return tuple(self._authoritative)

    @property
    def pending(self) -> Mapping[str, PendingOperation]:
        """Read-only view of in-flight operations."""
        return MappingProxyType(self._pending)

    def seed(self, bookmarks: Iterable[Bookmark]) -> None:
        """Replace the authoritative collection with a fresh server fetch."""
        self._authoritative = list(bookmarks)
        logger.debug("Seeded %d bookmarks", len(self._authoritative))

    def view(self, query: str = "") -> list[BookmarkRow]:
        """Project the current state into visible rows."""
        return project(self._authoritative, self._pending, query)

    def contains(self, bookmark_id: str) -> bool:
        """Check whether a confirmed bookmark with this id is held."""
        return any(b.id == bookmark_id for b in self._authoritative)

    def is_pending(self, bookmark_id: str) -> bool:
        """Check whether an add or delete is in flight for this id."""
        return bookmark_id in self._pending

    def _insert_ordered(self, bookmark: Bookmark) -> None:
        for index, existing in enumerate(self._authoritative):
            if existing.created_at <= bookmark.created_at:
                self._authoritative.insert(index, bookmark)
                return
        self._authoritative.append(bookmark)

    def _remove(self, bookmark_id: str) -> bool:
        before = len(self._authoritative)
        self._authoritative = [b for b in self._authoritative if b.id != bookmark_id]
        return len(self._authoritative) != before

    # Add

    def begin_add(
        self,
        user_id: str,
        title: str,
        url: str,
        now: datetime | None = None,
    ) -> Bookmark:
        """Create a speculative entry and mark it pending."""
        speculative = Bookmark(
            id=new_speculative_id(),
            user_id=user_id,
            title=title,
            url=url,
            created_at=now or datetime.now(UTC),
        )
        self._pending[speculative.id] = PendingAdd(bookmark=speculative)
        return speculative

    def confirm_add(self, speculative_id: str, canonical: Bookmark) -> bool:
        """
        Replace a speculative entry with the server's canonical record.

        The canonical record is not inserted again if a realtime push already
        delivered it.
        """
        if not isinstance(self._pending.get(speculative_id), PendingAdd):
            return False
        del self._pending[speculative_id]
        if not self.contains(canonical.id):
            self._insert_ordered(canonical)
        return True

    def fail_add(self, speculative_id: str) -> bool:
        """Drop a speculative entry after the server rejected it."""
        if not isinstance(self._pending.get(speculative_id), PendingAdd):
            return False
        del self._pending[speculative_id]
        return True

    # Delete

    def begin_delete(self, bookmark_id: str) -> bool:
        """
        Hide a confirmed bookmark while its delete is in flight.

        Returns False for unknown ids, speculative entries, and bookmarks that
        already have a delete in flight.
        """
        if bookmark_id in self._pending:
            return False
        original = next((b for b in self._authoritative if b.id == bookmark_id), None)
        if original is None:
            return False
        self._pending[bookmark_id] = PendingDelete(original=original)
        return True

    def confirm_delete(self, bookmark_id: str) -> bool:
        """Remove a bookmark permanently once the server confirms the delete."""
        if not isinstance(self._pending.get(bookmark_id), PendingDelete):
            return False
        del self._pending[bookmark_id]
        self._pushed_deletes.discard(bookmark_id)
        self._remove(bookmark_id)
        return True

    def fail_delete(self, bookmark_id: str) -> bool:
        """
        Make a bookmark visible again after its delete failed.

        If the row is missing it is re-inserted and the collection re-sorted by
        creation time. A row that a realtime push reported as deleted stays gone.
        """
        op = self._pending.get(bookmark_id)
        if not isinstance(op, PendingDelete):
            return False
        del self._pending[bookmark_id]
        if bookmark_id in self._pushed_deletes:
            self._pushed_deletes.discard(bookmark_id)
            return True
        if not self.contains(bookmark_id):
            self._authoritative = sort_newest_first([*self._authoritative, op.original])
        return True

    # Realtime

    def apply_insert(self, bookmark: Bookmark) -> bool:
        """
        Add a pushed record unless one with the same id is already held.

        The oldest undelivered pending add with the same owner, title and URL
        is marked delivered so the speculative and canonical rows are never
        shown together. That add still settles through confirm or fail.
        """
        if self.contains(bookmark.id):
            return False
        self._insert_ordered(bookmark)
        for key, op in self._pending.items():
            if isinstance(op, PendingAdd) and not op.delivered and op.matches(bookmark):
                self._pending[key] = replace(op, delivered=True)
                break
        return True

    def apply_delete(self, bookmark_id: str) -> bool:
        """Remove a pushed delete by id; a no-op when the id is absent."""
        if isinstance(self._pending.get(bookmark_id), PendingDelete):
            self._pushed_deletes.add(bookmark_id)
        return self._remove(bookmark_id)
