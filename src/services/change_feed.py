"""
In-process realtime change feed.

Services record row-level changes on the request's database session. Once that
session commits, the changes are published to every subscriber whose table and
user filter match; a rollback discards them. Subscribers each own a bounded
queue that a Server-Sent Events response drains.
"""
import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from core.config import get_settings

logger = logging.getLogger(__name__)

PENDING_CHANGES_KEY = "pending_change_events"


class ChangeType(StrEnum):
    """Kind of row-level change."""

    INSERT = "INSERT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row of ``table`` owned by ``user_id``."""

    table: str
    type: ChangeType
    user_id: UUID
    record: dict[str, Any]

    def to_sse(self) -> str:
        """Format as a Server-Sent Events message."""
        data = json.dumps({"table": self.table, "type": str(self.type), "record": self.record})
        return f"event: {self.type}\ndata: {data}\n\n"


@dataclass
class Subscription:
    """A subscriber's filter and its pending event queue."""

    table: str
    user_id: UUID | None
    queue: asyncio.Queue[ChangeEvent | None]
    id: str = field(default_factory=lambda: f"sub_{uuid4().hex[:12]}")

    def matches(self, change: ChangeEvent) -> bool:
        """Check whether this subscription wants ``change``."""
        if change.table != self.table:
            return False
        return self.user_id is None or self.user_id == change.user_id


class ChangeFeed:
    """Fan-out of committed change events to live subscriptions."""

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscriptions: dict[str, Subscription] = {}
        self._closed = False

    @property
    def subscription_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._subscriptions)

    @property
    def closed(self) -> bool:
        """Whether the feed has been shut down."""
        return self._closed

    def subscribe(self, table: str, user_id: UUID | None = None) -> Subscription:
        """Register a subscription for ``table``, optionally scoped to one user."""
        subscription = Subscription(
            table=table,
            user_id=user_id,
            queue=asyncio.Queue(maxsize=self._queue_size),
        )
        self._subscriptions[subscription.id] = subscription
        logger.debug("Change feed subscription %s opened for %s", subscription.id, table)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. Safe to call more than once."""
        if self._subscriptions.pop(subscription.id, None) is not None:
            logger.debug("Change feed subscription %s closed", subscription.id)

    def publish(self, change: ChangeEvent) -> int:
        """
        Deliver ``change`` to every matching subscription.

        Returns the number of subscriptions that received the event. A full
        queue drops the event for that subscriber only.
        """
        if self._closed:
            return 0
        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if not subscription.matches(change):
                continue
            try:
                subscription.queue.put_nowait(change)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Change feed queue full, dropping %s event for subscription %s",
                    change.type,
                    subscription.id,
                )
        return delivered

    def close(self) -> None:
        """Shut down the feed and wake every open stream so it can finish."""
        self._closed = True
        for subscription in list(self._subscriptions.values()):
            # Make room for the end-of-stream marker
            while subscription.queue.full():
                subscription.queue.get_nowait()
            subscription.queue.put_nowait(None)

    async def stream(
        self,
        subscription: Subscription,
        heartbeat_seconds: float = 30.0,
    ) -> AsyncGenerator[str]:
        """
        Yield Server-Sent Events text for ``subscription`` until the feed closes.

        Sends a comment on connect and a heartbeat comment whenever no event
        arrives within ``heartbeat_seconds``. The subscription is removed when
        the generator finishes for any reason, including client disconnect.
        """
        try:
            yield ": connected\n\n"
            while True:
                try:
                    change = await asyncio.wait_for(
                        subscription.queue.get(), timeout=heartbeat_seconds,
                    )
                except TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                if change is None:
                    return
                yield change.to_sse()
        finally:
            self.unsubscribe(subscription)


def record_change(session: AsyncSession | Session, change: ChangeEvent) -> None:
    """Queue ``change`` for publication when ``session`` commits."""
    session.info.setdefault(PENDING_CHANGES_KEY, []).append(change)


@event.listens_for(Session, "after_commit")
def _publish_committed_changes(session: Session) -> None:
    changes = session.info.pop(PENDING_CHANGES_KEY, [])
    if not changes:
        return
    feed = get_change_feed()
    for change in changes:
        feed.publish(change)


@event.listens_for(Session, "after_rollback")
def _discard_rolled_back_changes(session: Session) -> None:
    session.info.pop(PENDING_CHANGES_KEY, None)


# Global change feed state using a container to avoid global statement
class _ChangeFeedState:
    """Container for global change feed state."""

    feed: ChangeFeed | None = None


_state = _ChangeFeedState()


def get_change_feed() -> ChangeFeed:
    """Get the global change feed, creating it on first use."""
    if _state.feed is None:
        _state.feed = ChangeFeed(queue_size=get_settings().change_feed_queue_size)
    return _state.feed


def set_change_feed(feed: ChangeFeed | None) -> None:
    """Set the global change feed instance."""
    _state.feed = feed
