"""Data models for the synchronous write queue.

Outcome values keep the result codes used by the ioBroker state handler
scripts, so log lines read the same on both sides.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


class ProcessingState(Enum):
    """Processing state of the queue head, or of the whole drain.

    IDLE: Nothing in flight (also reported for direct writes, which are
        never tracked for acknowledgment)
    PROCESSING: A write is issued and its outcome is not known yet
    ACKNOWLEDGED: The backend confirmed the written value
    TIMED_OUT: No confirmation within the configured timeout
    ERRORED: The backend rejected the write when it was issued
    """

    IDLE = "none"
    PROCESSING = "processing"
    ACKNOWLEDGED = "value acknowledged"
    TIMED_OUT = "timeout reached"
    ERRORED = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {ProcessingState.ACKNOWLEDGED, ProcessingState.TIMED_OUT, ProcessingState.ERRORED}
)


class ProcessorEvent(Enum):
    """Inputs of the processor state machine."""

    WRITE_ISSUED = "write_issued"
    ACK_RECEIVED = "ack_received"
    TIMEOUT_FIRED = "timeout_fired"
    WRITE_FAILED = "write_failed"
    POLL_TICK = "poll_tick"


class DrainMode(Enum):
    """How finished entries are released from the queue.

    POLL: A periodic poller picks up the outcome (latency up to one interval)
    EVENT: The release step is scheduled as soon as the outcome is known
    """

    POLL = "poll"
    EVENT = "event"


CompletionCallback = Callable[[ProcessingState, "QueueEntry"], None]


@dataclass(eq=False)
class QueueEntry:
    """A pending state write.

    Attributes:
        action: Backend operation (always "set_state" for now).
        target: State identifier to write.
        value: Value to write.
        on_complete: Optional callback, called with (outcome, entry).
        completion: Future resolved with the outcome; created on enqueue.
        outcome: Recorded once the entry is released.
        error: Exception raised by the backend for ERRORED entries.
    """

    action: str
    target: str
    value: Any
    on_complete: Optional[CompletionCallback] = None
    completion: Optional["asyncio.Future[Any]"] = field(default=None, repr=False)
    outcome: Optional[ProcessingState] = None
    error: Optional[BaseException] = None

    @classmethod
    def create_set_state(
        cls,
        target: str,
        value: Any,
        on_complete: Optional[CompletionCallback] = None,
    ) -> "QueueEntry":
        return cls("set_state", target, value, on_complete)

    @property
    def label(self) -> str:
        return f"{self.action}({self.target},{self.value})"
