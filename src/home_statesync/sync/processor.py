"""The synchronous write processor.

Writes are issued one at a time. After a write is issued, two things race:
an acknowledgment subscription on (target, value, ack=True) and a timeout
timer. The first one to fire decides the outcome and cancels the other. A
rejected write is a third, terminal outcome.

Outcomes are released (callback fired, future resolved, entry removed) by a
drain step. In POLL mode the drain step runs on a periodic poller, so a single
scheduled check decides "is the head done?" and never races with the ack or
timeout callbacks. In EVENT mode it is scheduled right after the outcome.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Dict, Optional, Set, Tuple

from home_statesync.core.bus import StateChange, StateFilter, Subscription
from home_statesync.core.log import StateLogger

from .adapter import StateBackend
from .config import SyncConfig
from .models import DrainMode, ProcessingState, ProcessorEvent, QueueEntry
from .queue import StateQueue

logger = logging.getLogger(__name__)

# (current state, event) -> next state. Anything not listed is ignored,
# which is what makes the first of ack / timeout / failure win.
_TRANSITIONS: Dict[Tuple[ProcessingState, ProcessorEvent], ProcessingState] = {
    (ProcessingState.IDLE, ProcessorEvent.WRITE_ISSUED): ProcessingState.PROCESSING,
    (ProcessingState.PROCESSING, ProcessorEvent.ACK_RECEIVED): ProcessingState.ACKNOWLEDGED,
    (ProcessingState.PROCESSING, ProcessorEvent.TIMEOUT_FIRED): ProcessingState.TIMED_OUT,
    (ProcessingState.PROCESSING, ProcessorEvent.WRITE_FAILED): ProcessingState.ERRORED,
}


class SynchronousProcessor:
    """
    Drains a StateQueue one entry at a time.

    The processor exclusively owns its queue and processing state. Several
    processors (e.g. one per backend) can run side by side.
    """

    def __init__(
        self,
        backend: StateBackend,
        config: Optional[SyncConfig] = None,
        state_log: Optional[StateLogger] = None,
        queue: Optional[StateQueue] = None,
    ) -> None:
        """
        Args:
            backend: Backend the writes are issued against
            config: Timeout and drain settings (defaults if None)
            state_log: Logger for queue tracing (module logger if None)
            queue: Queue to drain (a new, empty one if None)
        """
        self._backend = backend
        self._config = config or SyncConfig()
        self._log = state_log or StateLogger(logger, debug=self._config.debug)
        self._queue = queue if queue is not None else StateQueue()

        self._state = ProcessingState.IDLE
        self._current: Optional[QueueEntry] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._ack_subscription: Optional[Subscription] = None
        self._write_tasks: Set["asyncio.Task[None]"] = set()
        self._poller: Optional["asyncio.Task[None]"] = None

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def queue_size(self) -> int:
        return self._queue.size()

    @property
    def current_entry(self) -> Optional[QueueEntry]:
        return self._current

    def is_processing(self) -> bool:
        """True while a write is in flight or any entry is still queued."""
        return self._state is ProcessingState.PROCESSING or self._queue.has_next()

    def enqueue(self, entry: QueueEntry) -> "asyncio.Future[Any]":
        """
        Queue an entry and start draining if idle.

        Must be called from a running event loop.

        Args:
            entry: The write to serialize

        Returns:
            Future resolved with the entry's ProcessingState outcome
        """
        loop = asyncio.get_running_loop()
        entry.completion = loop.create_future()
        self._queue.enqueue(entry)
        self._log.debug(f"{entry.label} added to state queue (new size: {self._queue.size()})")

        if self._state is ProcessingState.IDLE:
            self._process_next_entry()
        else:
            self._log.debug(
                f"{entry.label} processing after already "
                f"{self._queue.size() - 1} queued entries has been processed..."
            )

        self._ensure_poller()
        return entry.completion

    def _step(self, event: ProcessorEvent, entry: Optional[QueueEntry] = None) -> bool:
        """
        Apply one event to the state machine.

        Returns:
            True if the event caused a transition
        """
        if event is ProcessorEvent.POLL_TICK:
            return self._drain_step()

        if entry is not None and entry is not self._current:
            self._log.debug(f"{event.value} for stale entry {entry.label} ignored")
            return False

        next_state = _TRANSITIONS.get((self._state, event))
        if next_state is None:
            self._log.debug(f"{event.value} ignored in state '{self._state.value}'")
            return False

        self._state = next_state
        return True

    def _process_next_entry(self) -> None:
        entry = self._queue.peek_head()
        self._current = entry
        self._step(ProcessorEvent.WRITE_ISSUED, entry)
        self._log.debug(f"Processing next queue entry: {entry.label}")
        self._exec_set_state(entry)

    def _exec_set_state(self, entry: QueueEntry) -> None:
        self._log.debug(f"Exec {entry.label}")
        loop = asyncio.get_running_loop()

        try:
            # Arm before issuing so an immediate acknowledgment cannot be missed
            self._init_timers(entry)
            task = loop.create_task(self._backend.set_state(entry.target, entry.value, False))
        except Exception as e:
            entry.error = e
            self._step(ProcessorEvent.WRITE_FAILED, entry)
            self._log.error(
                f"Write {entry.label} could not be issued: {e!r}. "
                f"set result > {self._state.value}"
            )
            self._clear_timers(self._state)
            self._outcome_known()
            return

        self._write_tasks.add(task)
        task.add_done_callback(partial(self._on_write_done, entry))

    def _init_timers(self, entry: QueueEntry) -> None:
        loop = asyncio.get_running_loop()
        self._timeout_handle = loop.call_later(
            self._config.timeout, self._on_timeout, entry
        )
        self._ack_subscription = self._backend.subscribe_on_change(
            StateFilter(target=entry.target, value=entry.value, ack=True),
            partial(self._on_ack, entry),
        )

    def _on_write_done(self, entry: QueueEntry, task: "asyncio.Task[None]") -> None:
        self._write_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return

        if self._step(ProcessorEvent.WRITE_FAILED, entry):
            entry.error = error
            self._log.error(
                f"Write {entry.label} rejected: {error!r}. "
                f"set result > {self._state.value}"
            )
            self._clear_timers(self._state)
            self._outcome_known()
        else:
            self._log.error(f"Write {entry.label} rejected after its outcome was decided: {error!r}")

    def _on_ack(self, entry: QueueEntry, change: StateChange) -> None:
        if self._step(ProcessorEvent.ACK_RECEIVED, entry):
            self._log.debug(
                f"Ack event: {entry.label} acknowledged by the backend. "
                f"set result > {self._state.value}"
            )
            self._clear_timers(self._state)
            self._outcome_known()

    def _on_timeout(self, entry: QueueEntry) -> None:
        if entry is self._current:
            # Fired, nothing left to cancel
            self._timeout_handle = None
        if self._step(ProcessorEvent.TIMEOUT_FIRED, entry):
            self._log.debug(
                f"Timeout: {entry.label} not acknowledged in time. "
                f"set result > {self._state.value}"
            )
            self._clear_timers(self._state)
            self._outcome_known()

    def _clear_timers(self, outcome: ProcessingState) -> None:
        cleared = []
        if self._ack_subscription is not None:
            self._backend.unsubscribe(self._ack_subscription)
            self._ack_subscription = None
            cleared.append("ack subscription")

        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
            cleared.append("timeout timer")

        if cleared:
            self._log.debug(f"{' & '.join(cleared)} cleared ({outcome.value}).")

    def _outcome_known(self) -> None:
        if self._config.drain_mode is DrainMode.EVENT:
            asyncio.get_running_loop().call_soon(self._step, ProcessorEvent.POLL_TICK)

    def _ensure_poller(self) -> None:
        if self._config.drain_mode is not DrainMode.POLL:
            return
        if self._poller is None or self._poller.done():
            self._poller = asyncio.get_running_loop().create_task(self._poll())

    async def _poll(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._config.poll_interval)
                self._step(ProcessorEvent.POLL_TICK)
                if not self.is_processing():
                    break
        finally:
            self._poller = None

    def _drain_step(self) -> bool:
        """
        Release the head entry if its outcome is known.

        Returns:
            True if an entry was released
        """
        entry = self._current
        if entry is None:
            return False

        label = f"Queue check: {entry.label}"
        if not self._state.is_terminal:
            self._log.debug(f"{label} - still processing...")
            return False

        outcome = self._state
        entry.outcome = outcome

        if entry.on_complete is not None:
            self._log.debug(f"{label} - execute callback function")
            try:
                entry.on_complete(outcome, entry)
            except Exception as e:
                logger.error(f"Error in completion callback for {entry.label}: {e}", exc_info=True)

        if entry.completion is not None and not entry.completion.done():
            entry.completion.set_result(outcome)

        self._queue.remove_head()
        self._log.debug(
            f'{label} - entry processed with result "{outcome.value}" > '
            f"removed from queue (new size: {self._queue.size()})"
        )

        self._current = None
        self._state = ProcessingState.IDLE

        if self._queue.has_next():
            self._process_next_entry()
        else:
            self._log.debug("Queue check: queue empty, all entries processed")

        return True
