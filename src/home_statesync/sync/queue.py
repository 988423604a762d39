"""FIFO queue of pending state writes."""

from collections import deque
from typing import Deque, List

from .models import QueueEntry


class StateQueue:
    """
    Ordered list of queue entries.

    The head is the entry currently (or next) being processed. Only the head
    is ever removed, and only after its outcome is known.
    """

    def __init__(self) -> None:
        self._entries: Deque[QueueEntry] = deque()

    def enqueue(self, entry: QueueEntry) -> None:
        self._entries.append(entry)

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def has_next(self) -> bool:
        return bool(self._entries)

    def peek_head(self) -> QueueEntry:
        assert self._entries, "peek_head() called on an empty queue"
        return self._entries[0]

    def remove_head(self) -> QueueEntry:
        assert self._entries, "remove_head() called on an empty queue"
        return self._entries.popleft()

    def entries(self) -> List[QueueEntry]:
        """Snapshot of the queued entries, head first."""
        return list(self._entries)
