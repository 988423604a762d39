"""
Backend adapter interface for the synchronous write queue.

The adapter is the only thing the queue knows about the host platform
(ioBroker, a test double, etc.). The integration layer provides a concrete
implementation.

Design Principle:
    The adapter is intentionally minimal: write a value, and tell me when a
    matching value change happens. Acknowledgment arrives as an ordinary
    state change with ack=True, out of band from the write call itself.
"""

import asyncio
from abc import ABC, abstractmethod
from itertools import count
from typing import Any, Dict, List, Optional, Tuple

from home_statesync.core.bus import (
    EventBus,
    StateChange,
    StateChangeHandler,
    StateFilter,
    Subscription,
)


class StateWriteError(Exception):
    """The backend rejected a write when it was issued."""

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(f"Write to '{target}' rejected: {reason}")
        self.target = target
        self.reason = reason


class StateBackend(ABC):
    """
    Abstract interface for backend state operations.

    This interface is intentionally minimal:
    - set_state: Issue a write
    - subscribe_on_change: Be told about matching state changes
    - unsubscribe: Stop being told
    """

    @abstractmethod
    async def set_state(self, target: str, value: Any, ack: bool = False) -> None:
        """
        Issue a state write.

        Returning means the backend accepted the write, not that the device
        applied it. Confirmation arrives later as a change with ack=True.

        Args:
            target: State identifier
            value: Value to write
            ack: False for a command, True to write an already-confirmed value

        Raises:
            StateWriteError: (or any exception) if the write is rejected
        """
        pass

    @abstractmethod
    def subscribe_on_change(
        self, state_filter: StateFilter, handler: StateChangeHandler
    ) -> Subscription:
        """
        Call handler for every state change matching the filter.

        Args:
            state_filter: Target/value/ack criteria
            handler: Callable receiving the StateChange

        Returns:
            Subscription handle for unsubscribe()
        """
        pass

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        """
        Cancel a subscription. Must be a no-op if already cancelled.

        Args:
            subscription: Handle from subscribe_on_change()
        """
        pass


class MemoryStateBackend(StateBackend):
    """
    In-memory backend for testing and demos.

    Tracks writes and allows simulating the device side: automatic
    acknowledgment after a delay, manual acknowledgment, and rejected writes.

    Example:
        backend = MemoryStateBackend(ack_delay=0.05)
        backend.reject("hm-rpc.0.BROKEN.1.STATE", "device unreachable")
    """

    def __init__(self, bus: Optional[EventBus] = None, ack_delay: Optional[float] = None) -> None:
        """
        Args:
            bus: EventBus used for change notifications (a new one if None)
            ack_delay: Seconds after which writes are acknowledged (None = never)
        """
        self._bus = bus or EventBus()
        self._states: Dict[str, StateChange] = {}
        self._writes: List[Tuple[str, Any, bool]] = []
        self._rejections: Dict[str, str] = {}
        self._pending_acks: Dict[int, asyncio.TimerHandle] = {}
        self._ack_ids = count(1)
        self.ack_delay = ack_delay

    @property
    def bus(self) -> EventBus:
        return self._bus

    def reject(self, target: str, reason: str = "rejected") -> None:
        """Make future writes to target fail with StateWriteError."""
        self._rejections[target] = reason

    def accept(self, target: str) -> None:
        """Undo reject()."""
        self._rejections.pop(target, None)

    def get_state(self, target: str) -> Optional[StateChange]:
        """Get the last change applied to target, or None."""
        return self._states.get(target)

    def get_writes(self) -> List[Tuple[str, Any, bool]]:
        """Get recorded writes as (target, value, ack) tuples."""
        return self._writes.copy()

    def clear_writes(self) -> None:
        self._writes.clear()

    def acknowledge(self, target: str) -> bool:
        """
        Confirm the current value of target, as a device would.

        Returns:
            False if target has never been written
        """
        current = self._states.get(target)
        if current is None:
            return False
        self._apply(target, current.value, True, source="device")
        return True

    def _apply(self, target: str, value: Any, ack: bool, source: str = "memory") -> None:
        previous = self._states.get(target)
        change = StateChange(
            target=target,
            value=value,
            ack=ack,
            previous_value=previous.value if previous else None,
            source=source,
        )
        self._states[target] = change
        self._bus.publish(change)

    def _delayed_ack(self, ack_id: int, target: str, value: Any) -> None:
        self._pending_acks.pop(ack_id, None)
        # A newer write supersedes the pending confirmation
        current = self._states.get(target)
        if current is not None and current.value != value:
            return
        self._apply(target, value, True, source="device")

    # StateBackend implementation

    async def set_state(self, target: str, value: Any, ack: bool = False) -> None:
        self._writes.append((target, value, ack))

        reason = self._rejections.get(target)
        if reason is not None:
            raise StateWriteError(target, reason)

        self._apply(target, value, ack)

        if not ack and self.ack_delay is not None:
            ack_id = next(self._ack_ids)
            self._pending_acks[ack_id] = asyncio.get_running_loop().call_later(
                self.ack_delay, self._delayed_ack, ack_id, target, value
            )

    def subscribe_on_change(
        self, state_filter: StateFilter, handler: StateChangeHandler
    ) -> Subscription:
        return self._bus.subscribe(handler, state_filter)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._bus.unsubscribe(subscription)

    def pending_ack_count(self) -> int:
        """Number of automatic acknowledgments not fired yet."""
        return len(self._pending_acks)

    def cancel_pending_acks(self) -> None:
        """Drop scheduled automatic acknowledgments."""
        for handle in self._pending_acks.values():
            handle.cancel()
        self._pending_acks.clear()
