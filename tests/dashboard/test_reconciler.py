"""Tests for optimistic reconciliation of pending mutations with server state."""
from collections.abc import Callable

from dashboard.models import Bookmark, is_speculative_id
from dashboard.reconciler import (
    OptimisticReconciler,
    PendingAdd,
    PendingDelete,
    matches_query,
    project,
)


def visible_ids(reconciler: OptimisticReconciler, query: str = "") -> list[str]:
    return [row.bookmark.id for row in reconciler.view(query)]


class TestProject:
    """Tests for the pure projection of authoritative state and pending operations."""

    def test__adds_first_most_recent_first(
        self, bookmarks: list[Bookmark], make_bookmark: Callable[..., Bookmark],
    ) -> None:
        first = make_bookmark("first pending", minutes=40)
        second = make_bookmark("second pending", minutes=41)
        pending = {first.id: PendingAdd(first), second.id: PendingAdd(second)}

        rows = project(bookmarks, pending)

        assert [r.bookmark.title for r in rows[:2]] == ["second pending", "first pending"]
        assert [r.is_optimistic for r in rows] == [True, True, False, False, False]

    def test__pending_deletes_hidden(self, bookmarks: list[Bookmark]) -> None:
        pending = {bookmarks[1].id: PendingDelete(bookmarks[1])}

        rows = project(bookmarks, pending)

        assert [r.bookmark.id for r in rows] == [bookmarks[0].id, bookmarks[2].id]

    def test__does_not_mutate_inputs(self, bookmarks: list[Bookmark]) -> None:
        snapshot = list(bookmarks)
        pending = {bookmarks[0].id: PendingDelete(bookmarks[0])}

        project(bookmarks, pending, "python")

        assert bookmarks == snapshot
        assert list(pending) == [bookmarks[0].id]


class TestMatchesQuery:
    """Tests for the search predicate."""

    def test__case_insensitive_title_and_url(self, make_bookmark: Callable[..., Bookmark]) -> None:
        bookmark = make_bookmark("Python Docs", "https://docs.python.org")
        assert matches_query(bookmark, "PYTHON")
        assert matches_query(bookmark, "docs.python")
        assert not matches_query(bookmark, "rust")

    def test__blank_query_matches_everything(self, make_bookmark: Callable[..., Bookmark]) -> None:
        assert matches_query(make_bookmark(), "   ")


class TestAdd:
    """Tests for the add state machine."""

    def test__speculative_entry_visible_at_head(
        self, bookmarks: list[Bookmark], user_id: str,
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)

        speculative = reconciler.begin_add(user_id, "Example", "https://example.com")

        rows = reconciler.view()
        assert rows[0].bookmark == speculative
        assert rows[0].is_optimistic is True
        assert is_speculative_id(speculative.id)
        assert len(rows) == 4

    def test__confirm_replaces_speculative_with_canonical(
        self, bookmarks: list[Bookmark], user_id: str, make_bookmark: Callable[..., Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        speculative = reconciler.begin_add(user_id, "Example", "https://example.com")
        canonical = make_bookmark("Example", "https://example.com", minutes=60)

        assert reconciler.confirm_add(speculative.id, canonical) is True

        rows = reconciler.view()
        assert rows[0].bookmark == canonical
        assert rows[0].is_optimistic is False
        assert speculative.id not in visible_ids(reconciler)
        assert reconciler.pending == {}

    def test__failure_restores_previous_state(
        self, bookmarks: list[Bookmark], user_id: str,
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        before = reconciler.view()
        speculative = reconciler.begin_add(user_id, "Example", "https://example.com")

        assert reconciler.fail_add(speculative.id) is True

        assert reconciler.view() == before

    def test__only_one_outcome_applies(
        self, bookmarks: list[Bookmark], user_id: str, make_bookmark: Callable[..., Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        speculative = reconciler.begin_add(user_id, "Example", "https://example.com")
        canonical = make_bookmark("Example", minutes=60)

        assert reconciler.confirm_add(speculative.id, canonical) is True
        assert reconciler.fail_add(speculative.id) is False
        assert reconciler.confirm_add(speculative.id, canonical) is False

        assert visible_ids(reconciler).count(canonical.id) == 1

    def test__confirm_after_realtime_insert_does_not_duplicate(
        self, bookmarks: list[Bookmark], user_id: str, make_bookmark: Callable[..., Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        speculative = reconciler.begin_add(user_id, "Example", "https://example.com")
        canonical = make_bookmark("Example", minutes=60)

        reconciler.apply_insert(canonical)
        reconciler.confirm_add(speculative.id, canonical)

        assert visible_ids(reconciler).count(canonical.id) == 1
        assert len(reconciler.view()) == 4

    def test__realtime_insert_before_confirm_shows_one_row(
        self, bookmarks: list[Bookmark], user_id: str, make_bookmark: Callable[..., Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        speculative = reconciler.begin_add(user_id, "Example", "https://example.com")
        canonical = make_bookmark("Example", minutes=60)

        reconciler.apply_insert(canonical)

        rows = reconciler.view()
        assert len(rows) == 4
        assert rows[0].bookmark == canonical
        assert not any(row.is_optimistic for row in rows)
        assert reconciler.is_pending(speculative.id)

        assert reconciler.confirm_add(speculative.id, canonical) is True
        assert visible_ids(reconciler).count(canonical.id) == 1
        assert reconciler.pending == {}

    def test__realtime_insert_for_other_add_keeps_speculative_entry(
        self, user_id: str, make_bookmark: Callable[..., Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler()
        speculative = reconciler.begin_add(user_id, "Mine", "https://mine.example.com")

        reconciler.apply_insert(make_bookmark("Theirs", "https://theirs.example.com"))

        assert [row.bookmark.id for row in reconciler.view() if row.is_optimistic] == [
            speculative.id,
        ]

    def test__concurrent_adds_tracked_independently(self, user_id: str) -> None:
        reconciler = OptimisticReconciler()
        first = reconciler.begin_add(user_id, "first", "https://first.example.com")
        second = reconciler.begin_add(user_id, "second", "https://second.example.com")

        reconciler.fail_add(first.id)

        assert visible_ids(reconciler) == [second.id]
        assert set(reconciler.pending) == {second.id}


class TestDelete:
    """Tests for the delete state machine."""

    def test__pending_delete_hides_entry(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)

        assert reconciler.begin_delete(bookmarks[1].id) is True

        assert bookmarks[1].id not in visible_ids(reconciler)
        assert reconciler.is_pending(bookmarks[1].id)

    def test__confirm_removes_permanently(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        reconciler.begin_delete(bookmarks[1].id)

        assert reconciler.confirm_delete(bookmarks[1].id) is True

        assert not reconciler.contains(bookmarks[1].id)
        assert visible_ids(reconciler) == [bookmarks[0].id, bookmarks[2].id]

    def test__failure_restores_original_position(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        reconciler.begin_delete(bookmarks[1].id)

        assert reconciler.fail_delete(bookmarks[1].id) is True

        assert visible_ids(reconciler) == [b.id for b in bookmarks]
        assert reconciler.pending == {}

    def test__failure_after_reseed_resorts_by_creation_time(
        self, bookmarks: list[Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        reconciler.begin_delete(bookmarks[1].id)
        # A refresh while the delete is in flight no longer holds the row
        reconciler.seed([bookmarks[0], bookmarks[2]])

        reconciler.fail_delete(bookmarks[1].id)

        assert visible_ids(reconciler) == [b.id for b in bookmarks]

    def test__unknown_speculative_and_duplicate_deletes_rejected(
        self, bookmarks: list[Bookmark], user_id: str,
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        speculative = reconciler.begin_add(user_id, "Example", "https://example.com")

        assert reconciler.begin_delete("missing") is False
        assert reconciler.begin_delete(speculative.id) is False
        assert reconciler.begin_delete(bookmarks[0].id) is True
        assert reconciler.begin_delete(bookmarks[0].id) is False

    def test__only_one_outcome_applies(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        reconciler.begin_delete(bookmarks[0].id)

        assert reconciler.fail_delete(bookmarks[0].id) is True
        assert reconciler.confirm_delete(bookmarks[0].id) is False

        assert reconciler.contains(bookmarks[0].id)

    def test__pushed_delete_wins_over_failed_local_delete(
        self, bookmarks: list[Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        reconciler.begin_delete(bookmarks[0].id)

        reconciler.apply_delete(bookmarks[0].id)
        reconciler.fail_delete(bookmarks[0].id)

        assert bookmarks[0].id not in visible_ids(reconciler)
        assert not reconciler.contains(bookmarks[0].id)


class TestRealtime:
    """Tests for merging pushed changes."""

    def test__insert_for_present_id_is_ignored(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)

        assert reconciler.apply_insert(bookmarks[0]) is False

        assert len(reconciler.authoritative) == 3

    def test__insert_keeps_newest_first_order(
        self, bookmarks: list[Bookmark], make_bookmark: Callable[..., Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        newest = make_bookmark("newest", minutes=99)
        middle = make_bookmark("between", minutes=15)

        reconciler.apply_insert(newest)
        reconciler.apply_insert(middle)

        titles = [b.title for b in reconciler.authoritative]
        assert titles == ["newest", "Python docs", "SQLAlchemy", "between", "Hacker News"]

    def test__delete_for_absent_id_is_noop(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)

        assert reconciler.apply_delete("missing") is False
        assert reconciler.apply_delete(bookmarks[0].id) is True
        assert reconciler.apply_delete(bookmarks[0].id) is False

        assert len(reconciler.authoritative) == 2


class TestSearch:
    """Tests for search over the projected view."""

    def test__title_only_match_returns_exact_subset(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)

        assert visible_ids(reconciler, "hacker") == [bookmarks[2].id]

    def test__clearing_restores_full_non_deleting_collection(
        self, bookmarks: list[Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        reconciler.begin_delete(bookmarks[0].id)

        assert visible_ids(reconciler, "sqlalchemy") == [bookmarks[1].id]
        assert visible_ids(reconciler, "") == [bookmarks[1].id, bookmarks[2].id]

    def test__search_applies_to_speculative_entries(
        self, bookmarks: list[Bookmark], user_id: str,
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        speculative = reconciler.begin_add(user_id, "Rust book", "https://doc.rust-lang.org")

        assert visible_ids(reconciler, "rust") == [speculative.id]
