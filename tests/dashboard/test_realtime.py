"""Tests for the realtime change listener."""
import asyncio
import logging
from collections.abc import AsyncGenerator, Callable

import pytest

from dashboard.errors import GatewayError
from dashboard.models import Bookmark, RealtimeEvent
from dashboard.realtime import RealtimeListener
from dashboard.reconciler import OptimisticReconciler


class QueueSource:
    """Change source fed by the test; ``None`` ends the stream, an exception is raised."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[RealtimeEvent | Exception | None] = asyncio.Queue()
        self.opened = 0
        self.closed = 0

    async def changes(self) -> AsyncGenerator[RealtimeEvent]:
        self.opened += 1
        try:
            while True:
                item = await self.queue.get()
                if item is None:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed += 1


def insert(bookmark: Bookmark, table: str = "bookmarks") -> RealtimeEvent:
    return RealtimeEvent(table=table, type="INSERT", record=bookmark)


def delete(bookmark: Bookmark) -> RealtimeEvent:
    return RealtimeEvent(table="bookmarks", type="DELETE", record=bookmark)


async def drain(source: QueueSource) -> None:
    """Let the listener consume everything queued so far."""
    while not source.queue.empty():
        await asyncio.sleep(0)
    await asyncio.sleep(0)


class TestApply:
    """Tests for merging single events."""

    def test__insert_dedups_against_present_id(self, bookmarks: list[Bookmark]) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        listener = RealtimeListener(QueueSource(), reconciler)

        assert listener.apply(insert(bookmarks[0])) is False
        assert len(reconciler.authoritative) == 3

    def test__delete_absent_is_noop(
        self, bookmarks: list[Bookmark], make_bookmark: Callable[..., Bookmark],
    ) -> None:
        reconciler = OptimisticReconciler(bookmarks)
        listener = RealtimeListener(QueueSource(), reconciler)

        assert listener.apply(delete(make_bookmark("never seen"))) is False
        assert listener.applied == 0

    def test__other_tables_ignored(self, make_bookmark: Callable[..., Bookmark]) -> None:
        reconciler = OptimisticReconciler()
        listener = RealtimeListener(QueueSource(), reconciler)

        assert listener.apply(insert(make_bookmark(), table="notes")) is False
        assert reconciler.authoritative == ()

    def test__on_change_called_only_for_effective_events(
        self, bookmarks: list[Bookmark], make_bookmark: Callable[..., Bookmark],
    ) -> None:
        seen: list[RealtimeEvent] = []
        listener = RealtimeListener(
            QueueSource(), OptimisticReconciler(bookmarks), on_change=seen.append,
        )
        fresh = insert(make_bookmark("fresh", minutes=90))

        listener.apply(fresh)
        listener.apply(fresh)
        listener.apply(delete(bookmarks[2]))

        assert [e.type for e in seen] == ["INSERT", "DELETE"]
        assert listener.applied == 2


class TestLifecycle:
    """Tests for the scoped subscription."""

    async def test__consumes_events_while_open(
        self, bookmarks: list[Bookmark], make_bookmark: Callable[..., Bookmark],
    ) -> None:
        source = QueueSource()
        reconciler = OptimisticReconciler(bookmarks)
        fresh = make_bookmark("fresh", minutes=90)

        async with RealtimeListener(source, reconciler) as listener:
            source.queue.put_nowait(insert(fresh))
            source.queue.put_nowait(delete(bookmarks[0]))
            await drain(source)
            assert listener.running

        assert [b.id for b in reconciler.authoritative] == [
            fresh.id, bookmarks[1].id, bookmarks[2].id,
        ]

    async def test__subscription_released_on_exit(self) -> None:
        source = QueueSource()

        async with RealtimeListener(source, OptimisticReconciler()) as listener:
            await asyncio.sleep(0)
            assert source.opened == 1

        assert source.closed == 1
        assert not listener.running

    async def test__subscription_released_when_block_raises(self) -> None:
        source = QueueSource()

        try:
            async with RealtimeListener(source, OptimisticReconciler()):
                await asyncio.sleep(0)
                raise RuntimeError("view dismissed")
        except RuntimeError:
            pass

        assert source.closed == 1

    async def test__gateway_error_stops_listener_without_raising(self) -> None:
        source = QueueSource()

        async with RealtimeListener(source, OptimisticReconciler()) as listener:
            source.queue.put_nowait(GatewayError("Realtime connection lost"))
            await drain(source)
            assert not listener.running

        assert source.closed == 1

    async def test__unexpected_error_is_logged_not_raised_on_exit(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        source = QueueSource()

        with caplog.at_level(logging.ERROR, logger="dashboard.realtime"):
            async with RealtimeListener(source, OptimisticReconciler()) as listener:
                source.queue.put_nowait(ValueError("bad event"))
                await drain(source)
                assert not listener.running

        assert source.closed == 1
        assert "Realtime listener for bookmarks failed" in caplog.text

    async def test__close_is_idempotent(self) -> None:
        listener = RealtimeListener(QueueSource(), OptimisticReconciler())
        listener.start()

        await listener.close()
        await listener.close()

        assert not listener.running
