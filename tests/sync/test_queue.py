"""Tests for the FIFO state queue."""

import pytest

from home_statesync.sync import QueueEntry, StateQueue


def make_entry(target: str = "hm-rpc.0.A.1.STATE", value=1) -> QueueEntry:
    """Helper to create set_state entries."""
    return QueueEntry.create_set_state(target, value)


class TestStateQueue:
    """Tests for enqueue / peek / remove."""

    def test_empty_queue(self):
        """Test a new queue."""
        queue = StateQueue()
        assert queue.size() == 0
        assert len(queue) == 0
        assert queue.is_empty()
        assert not queue.has_next()

    def test_fifo_order(self):
        """Test that entries come out in insertion order."""
        queue = StateQueue()
        first, second, third = make_entry(value=1), make_entry(value=2), make_entry(value=3)
        for entry in (first, second, third):
            queue.enqueue(entry)

        assert queue.size() == 3
        assert queue.peek_head() is first
        assert queue.remove_head() is first
        assert queue.peek_head() is second
        queue.remove_head()
        assert queue.peek_head() is third
        queue.remove_head()
        assert queue.is_empty()

    def test_peek_does_not_remove(self):
        """Test that peek_head leaves the head in place."""
        queue = StateQueue()
        entry = make_entry()
        queue.enqueue(entry)

        assert queue.peek_head() is entry
        assert queue.peek_head() is entry
        assert queue.size() == 1

    def test_identical_writes_are_distinct_entries(self):
        """Test that two writes of the same value are both queued."""
        queue = StateQueue()
        queue.enqueue(make_entry())
        queue.enqueue(make_entry())

        entries = queue.entries()
        assert len(entries) == 2
        assert entries[0] is not entries[1]
        assert entries[0] != entries[1]

    def test_entries_is_a_snapshot(self):
        """Test that mutating the snapshot does not touch the queue."""
        queue = StateQueue()
        queue.enqueue(make_entry())
        queue.entries().clear()
        assert queue.size() == 1

    def test_peek_empty_queue_is_contract_violation(self):
        """Test peeking an empty queue."""
        with pytest.raises(AssertionError):
            StateQueue().peek_head()

    def test_remove_empty_queue_is_contract_violation(self):
        """Test removing from an empty queue."""
        with pytest.raises(AssertionError):
            StateQueue().remove_head()


class TestQueueEntry:
    """Tests for QueueEntry helpers."""

    def test_create_set_state(self):
        """Test the set_state factory."""
        callback = lambda outcome, entry: None  # noqa: E731
        entry = QueueEntry.create_set_state("hm-rpc.0.A.1.LEVEL", 0.5, callback)

        assert entry.action == "set_state"
        assert entry.target == "hm-rpc.0.A.1.LEVEL"
        assert entry.value == 0.5
        assert entry.on_complete is callback
        assert entry.completion is None
        assert entry.outcome is None
        assert entry.error is None

    def test_label(self):
        """Test the log label."""
        entry = QueueEntry.create_set_state("javascript.0.variables.test", "2")
        assert entry.label == "set_state(javascript.0.variables.test,2)"
