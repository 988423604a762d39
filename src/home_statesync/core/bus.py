"""
Event Bus implementation for state change notifications.

The Event Bus is a simple, synchronous dispatcher for state change events.
Backends publish a StateChange for every write; subscribers filter on
target, value and acknowledgment flag.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from itertools import count
from typing import Optional, Any, Callable, List

import logging

logger = logging.getLogger(__name__)

_ANY_VALUE = object()
_subscription_ids = count(1)


def _utc_now() -> datetime:
    """Get current UTC time (for default factory)."""
    return datetime.now(UTC)


@dataclass
class StateChange:
    """
    A change of a state value in the backend.

    Attributes:
        target: State identifier (e.g., "hm-rpc.0.ABC123.1.STATE")
        value: The new value
        ack: True if the backend confirmed the value, False for a command
        previous_value: Value before this change (None if unknown)
        source: Who produced the change (e.g., "memory", "hm-rpc")
        timestamp: When the change occurred
    """

    target: str
    value: Any
    ack: bool = False
    previous_value: Any = None
    source: str = "memory"
    timestamp: datetime = field(default_factory=_utc_now)


class StateFilter:
    """
    Filter for state change subscriptions.

    Every criterion left unset matches anything. A value of None is a real
    value, so "any value" is the default sentinel rather than None.
    """

    def __init__(
        self,
        target: Optional[str] = None,
        value: Any = _ANY_VALUE,
        ack: Optional[bool] = None,
    ):
        """
        Initialize a state filter.

        Args:
            target: Filter by state identifier (None = all targets)
            value: Filter by exact value (default = all values)
            ack: Filter by acknowledgment flag (None = both)
        """
        self.target = target
        self.value = value
        self.ack = ack

    @property
    def matches_any_value(self) -> bool:
        return self.value is _ANY_VALUE

    def matches(self, change: StateChange) -> bool:
        """
        Check if a state change matches this filter.

        Args:
            change: The state change to check

        Returns:
            True if the change matches the filter
        """
        if self.target is not None and change.target != self.target:
            return False

        if self.ack is not None and change.ack != self.ack:
            return False

        if not self.matches_any_value and change.value != self.value:
            return False

        return True

    def __repr__(self) -> str:
        value = "*" if self.matches_any_value else repr(self.value)
        return f"StateFilter(target={self.target!r}, value={value}, ack={self.ack!r})"


StateChangeHandler = Callable[[StateChange], None]


class Subscription:
    """Handle returned by EventBus.subscribe, used to unsubscribe."""

    def __init__(self, handler: StateChangeHandler, state_filter: StateFilter) -> None:
        self.id = next(_subscription_ids)
        self.handler = handler
        self.state_filter = state_filter
        self.active = True

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, filter={self.state_filter}, active={self.active})"


def _handler_name(handler: StateChangeHandler) -> str:
    # functools.partial and callable objects have no __name__
    return getattr(handler, "__name__", repr(handler))


class EventBus:
    """
    Simple, synchronous event bus for state change events.

    Handlers are wrapped in try/except so one bad subscriber cannot break
    delivery to the others.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        handler: StateChangeHandler,
        state_filter: Optional[StateFilter] = None,
    ) -> Subscription:
        """
        Subscribe to state changes.

        Args:
            handler: Callable that receives StateChange objects
            state_filter: Optional filter (None = receive all changes)

        Returns:
            Subscription handle for unsubscribe()
        """
        if state_filter is None:
            state_filter = StateFilter()

        subscription = Subscription(handler, state_filter)
        self._subscriptions.append(subscription)
        logger.debug(f"Subscribed handler {_handler_name(handler)} with {state_filter}")
        return subscription

    def publish(self, change: StateChange) -> None:
        """
        Publish a state change to all matching subscribers.

        Handlers are called synchronously and wrapped in try/except. A handler
        may unsubscribe itself (or others) while being called.

        Args:
            change: The state change to publish
        """
        logger.debug(
            f"Publishing change: {change.target}={change.value!r} "
            f"(ack={change.ack}, source={change.source})"
        )

        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            if subscription.state_filter.matches(change):
                try:
                    subscription.handler(change)
                except Exception as e:
                    logger.error(
                        f"Error in state handler {_handler_name(subscription.handler)} "
                        f"for {change.target}: {e}",
                        exc_info=True,
                    )

    def unsubscribe(self, subscription: Subscription) -> bool:
        """
        Remove a subscription.

        Unsubscribing twice is a no-op.

        Args:
            subscription: Handle returned by subscribe()

        Returns:
            True if the subscription was active
        """
        if not subscription.active:
            return False

        subscription.active = False
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]
        logger.debug(f"Unsubscribed handler {_handler_name(subscription.handler)}")
        return True

    def subscription_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)
