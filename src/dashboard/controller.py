"""
Dashboard orchestration.

``BookmarkDashboard`` is the single writer of the reconciler. Presentation code
calls ``add`` and ``request_delete``/``delete`` and reads the view-models back;
the realtime listener merges pushed changes into the same reconciler.
"""
import logging
from typing import Self

from dashboard.api_client import BookmarksApiClient
from dashboard.config import DashboardSettings
from dashboard.confirmation import DeleteConfirmation
from dashboard.errors import GatewayError, NoRowsDeletedError
from dashboard.forms import AddBookmarkForm
from dashboard.gateway import BookmarkGateway, ChangeSource, IdentityProvider
from dashboard.models import RealtimeEvent, UserProfile
from dashboard.realtime import RealtimeListener
from dashboard.reconciler import BookmarkRow, OptimisticReconciler
from dashboard.views import BookmarkListView, HeaderView, build_list_view, page_subtitle

logger = logging.getLogger(__name__)


class BookmarkDashboard:
    """State and actions behind the bookmarks page for one signed-in user."""

    def __init__(
        self,
        gateway: BookmarkGateway,
        user: UserProfile,
        confirmation: DeleteConfirmation | None = None,
        max_title_length: int = 500,
        max_url_length: int = 2048,
        identity: IdentityProvider | None = None,
    ) -> None:
        self._gateway = gateway
        self._identity = identity
        self.user = user
        self.confirmation = confirmation or DeleteConfirmation()
        self.max_title_length = max_title_length
        self.max_url_length = max_url_length
        self.reconciler = OptimisticReconciler()
        self.query = ""
        # Last delete failure per bookmark, shown next to its delete control
        self.errors: dict[str, str] = {}

    @classmethod
    async def open(cls, client: BookmarksApiClient, settings: DashboardSettings) -> Self:
        """Fetch the signed-in user and their bookmarks through ``client``."""
        user = await client.get_me()
        dashboard = cls(
            client,
            user,
            confirmation=DeleteConfirmation(
                policy=settings.delete_policy,
                window_seconds=settings.delete_confirm_seconds,
            ),
            max_title_length=settings.max_title_length,
            max_url_length=settings.max_url_length,
            identity=client,
        )
        await dashboard.load()
        return dashboard

    async def load(self) -> None:
        """Seed the authoritative collection from the server."""
        self.reconciler.seed(await self._gateway.fetch_all())

    def listen(self, source: ChangeSource) -> RealtimeListener:
        """Create a realtime listener bound to this dashboard's state."""
        return RealtimeListener(source, self.reconciler, on_change=self._on_realtime_change)

    def _on_realtime_change(self, event: RealtimeEvent) -> None:
        if event.type == "DELETE":
            self._forget(event.record.id)

    def _forget(self, bookmark_id: str) -> None:
        """Drop per-item UI state of a bookmark that no longer exists."""
        self.confirmation.reset(bookmark_id)
        self.errors.pop(bookmark_id, None)

    # Mutations

    async def add(self, title: str, url: str) -> str | None:
        """
        Add a bookmark optimistically.

        Returns an error message when the server rejected it, None on success.
        """
        speculative = self.reconciler.begin_add(self.user.id, title, url)
        try:
            canonical = await self._gateway.insert(title, url)
        except GatewayError as e:
            self.reconciler.fail_add(speculative.id)
            logger.info("Add of %s failed: %s", url, e.message)
            return e.message
        self.reconciler.confirm_add(speculative.id, canonical)
        return None

    async def delete(self, bookmark_id: str) -> None:
        """
        Delete a bookmark optimistically.

        The request carries the owner's id as well as the bookmark id. A delete
        that removes no rows counts as a failure and restores the bookmark.
        """
        if not self.reconciler.begin_delete(bookmark_id):
            return
        self.errors.pop(bookmark_id, None)
        try:
            deleted = await self._gateway.delete(bookmark_id, self.user.id)
            if not deleted:
                raise NoRowsDeletedError(bookmark_id)
        except GatewayError as e:
            self.reconciler.fail_delete(bookmark_id)
            self.errors[bookmark_id] = e.message
            logger.info("Delete of %s failed: %s", bookmark_id, e.message)
            return
        self.reconciler.confirm_delete(bookmark_id)
        self._forget(bookmark_id)

    async def request_delete(self, bookmark_id: str) -> bool:
        """
        Handle a press of a bookmark's delete control.

        Under the confirm policy the first press only arms the control.
        Returns True when a delete was issued.
        """
        if not self.confirmation.press(bookmark_id):
            return False
        await self.delete(bookmark_id)
        return True

    # Search

    def search(self, query: str) -> None:
        self.query = query

    def clear_search(self) -> None:
        self.query = ""

    # Views

    @property
    def rows(self) -> list[BookmarkRow]:
        """Visible rows under the current search."""
        return self.reconciler.view(self.query)

    def list_view(self) -> BookmarkListView:
        rows = self.rows
        states = {
            row.bookmark.id: self.confirmation.state(row.bookmark.id)
            for row in rows
            if not row.is_optimistic
        }
        return build_list_view(rows, self.query, states=states, errors=self.errors)

    def header(self) -> HeaderView:
        return HeaderView.from_profile(self.user)

    def subtitle(self) -> str:
        """Count of saved links, ignoring the search filter."""
        return page_subtitle(len(self.reconciler.view()))

    def form(self) -> AddBookmarkForm:
        """A fresh add-bookmark form wired to ``add``."""
        return AddBookmarkForm(
            self.add,
            max_title_length=self.max_title_length,
            max_url_length=self.max_url_length,
        )

    def sign_out(self) -> str | None:
        """Sign out through the identity provider; returns where to navigate next."""
        if self._identity is None:
            return None
        return self._identity.sign_out()
