"""Realtime change listener that merges pushed inserts and deletes into the reconciler."""
import asyncio
import logging
from collections.abc import Callable
from typing import Self

from dashboard.errors import GatewayError
from dashboard.gateway import ChangeSource
from dashboard.models import RealtimeEvent
from dashboard.reconciler import OptimisticReconciler

logger = logging.getLogger(__name__)


class RealtimeListener:
    """
    A scoped subscription to the change stream.

    Use as an async context manager: the subscription is opened on enter and
    released on exit however the block ends. ``on_change`` is called after any
    event that actually changed the reconciler's state.
    """

    def __init__(
        self,
        source: ChangeSource,
        reconciler: OptimisticReconciler,
        table: str = "bookmarks",
        on_change: Callable[[RealtimeEvent], None] | None = None,
    ) -> None:
        self._source = source
        self._reconciler = reconciler
        self._table = table
        self._on_change = on_change
        self._task: asyncio.Task[None] | None = None
        self.applied = 0

    @property
    def running(self) -> bool:
        """Whether the subscription is still consuming events."""
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def start(self) -> None:
        """Open the subscription in a background task."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name=f"realtime-{self._table}")

    async def close(self) -> None:
        """Stop consuming and release the subscription."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            # Never raised from teardown
            logger.exception("Realtime listener for %s failed", self._table)
        logger.debug("Realtime listener for %s closed", self._table)

    def apply(self, event: RealtimeEvent) -> bool:
        """
        Merge one pushed event.

        Inserts already present and deletes already absent are ignored.
        Returns True when the event changed state.
        """
        if event.table != self._table:
            return False
        if event.type == "INSERT":
            changed = self._reconciler.apply_insert(event.record)
        else:
            changed = self._reconciler.apply_delete(event.record.id)
        if changed:
            self.applied += 1
            if self._on_change is not None:
                self._on_change(event)
        return changed

    async def _run(self) -> None:
        stream = self._source.changes()
        try:
            async for event in stream:
                self.apply(event)
        except GatewayError as e:
            # No reconnect; the session keeps working without live updates
            logger.warning("Realtime subscription to %s ended: %s", self._table, e.message)
        finally:
            await stream.aclose()
