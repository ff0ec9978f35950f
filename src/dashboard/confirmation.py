"""Click-to-confirm delete as an explicit per-item timed state machine."""
import time
from collections.abc import Callable
from enum import StrEnum


class DeletePolicy(StrEnum):
    """How a delete gesture turns into a delete request."""

    IMMEDIATE = "immediate"
    CONFIRM = "confirm"


class ConfirmationState(StrEnum):
    """Per-item confirmation state."""

    IDLE = "idle"
    CONFIRMING = "confirming"


class DeleteConfirmation:
    """
    Tracks which items are waiting for a confirming second press.

    Each item is either idle or confirming until ``expires_at``. A first press
    arms the item; a second press before expiry confirms it. Expired items read
    as idle, so an unconfirmed press resets itself without a timer.
    """

    def __init__(
        self,
        policy: DeletePolicy = DeletePolicy.CONFIRM,
        window_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self.window_seconds = window_seconds
        self._clock = clock
        self._expires_at: dict[str, float] = {}

    def expires_at(self, item_id: str) -> float | None:
        """Deadline of an armed item, or None when it is idle."""
        deadline = self._expires_at.get(item_id)
        if deadline is not None and self._clock() >= deadline:
            del self._expires_at[item_id]
            return None
        return deadline

    def state(self, item_id: str) -> ConfirmationState:
        """Current state of ``item_id``."""
        if self.expires_at(item_id) is None:
            return ConfirmationState.IDLE
        return ConfirmationState.CONFIRMING

    def press(self, item_id: str) -> bool:
        """
        Register a delete press.

        Returns True when the delete should be issued now.
        """
        if self.policy is DeletePolicy.IMMEDIATE:
            return True
        if self.expires_at(item_id) is not None:
            del self._expires_at[item_id]
            return True
        self._expires_at[item_id] = self._clock() + self.window_seconds
        return False

    def reset(self, item_id: str) -> None:
        """Return ``item_id`` to idle."""
        self._expires_at.pop(item_id, None)
