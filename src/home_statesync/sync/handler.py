"""StateHandler - public entry point for state writes.

Decides per target whether a write must be serialized through the
SynchronousProcessor or can go straight to the backend.

Usage:
    handler = StateHandler(backend)

    handler.write_value("javascript.0.variables.test", 1)       # direct
    handler.write_value("hm-rpc.0.ABC123.1.STATE", True)         # queued, not awaited
    outcome = await handler.write_value("hm-rpc.0.ABC123.1.LEVEL", 0.5)
    await handler.wait_until_idle()                              # barrier
"""

import asyncio
import logging
from functools import partial
from typing import Any, Optional, Set

from home_statesync.core.log import StateLogger

from .adapter import StateBackend
from .config import SyncConfig
from .matchers import TargetMatcher, substring_matcher
from .models import CompletionCallback, ProcessingState, QueueEntry
from .processor import SynchronousProcessor

logger = logging.getLogger(__name__)


class StateHandler:
    """
    Facade over one backend and its write processor.

    write_value() is a plain method returning a future, not a coroutine, so
    a write is queued even when the caller does not await it.
    """

    def __init__(
        self,
        backend: StateBackend,
        config: Optional[SyncConfig] = None,
        matcher: Optional[TargetMatcher] = None,
        processor: Optional[SynchronousProcessor] = None,
    ) -> None:
        """
        Args:
            backend: Backend to write to
            config: Settings (defaults if None)
            matcher: Decides which targets are serialized
                (default: substring match on config.sync_markers)
            processor: Processor to queue writes on (created if None)
        """
        self._backend = backend
        self._config = config or SyncConfig()
        self._matcher = matcher or substring_matcher(self._config.sync_markers)
        self._log = StateLogger(logger, debug=self._config.debug)
        self._processor = processor or SynchronousProcessor(backend, self._config)
        self._direct_writes: Set["asyncio.Task[None]"] = set()

    @property
    def processor(self) -> SynchronousProcessor:
        return self._processor

    def requires_sync(self, target: str) -> bool:
        """Check if writes to target must go through the queue."""
        return self._matcher(target)

    def is_processing(self) -> bool:
        return self._processor.is_processing()

    def write_value(
        self,
        target: str,
        value: Any,
        on_complete: Optional[CompletionCallback] = None,
    ) -> "asyncio.Future[Any]":
        """
        Write a value, serialized if the target requires it.

        Must be called from a running event loop.

        Args:
            target: State identifier
            value: Value to write
            on_complete: Optional callback, called with (outcome, entry)

        Returns:
            Future resolved with the ProcessingState outcome for queued
            writes, or already resolved with True for direct writes
        """
        entry = QueueEntry.create_set_state(target, value, on_complete)

        if self.requires_sync(target):
            return self._processor.enqueue(entry)

        self._log.debug(f"Exec {entry.label} normally.")
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._backend.set_state(target, value, False))
        self._direct_writes.add(task)
        task.add_done_callback(partial(self._on_direct_write_done, entry))

        result = loop.create_future()
        result.set_result(True)
        return result

    async def wait_until_idle(self) -> None:
        """Wait until every queued write has been released."""
        while self._processor.is_processing():
            await asyncio.sleep(self._config.idle_check_interval)

    def _on_direct_write_done(self, entry: QueueEntry, task: "asyncio.Task[None]") -> None:
        self._direct_writes.discard(task)
        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            entry.error = error
            entry.outcome = ProcessingState.ERRORED
            self._log.error(f"Write {entry.label} rejected: {error!r}")
        else:
            # Not tracked for acknowledgment
            entry.outcome = ProcessingState.IDLE

        if entry.on_complete is not None:
            try:
                entry.on_complete(entry.outcome, entry)
            except Exception as e:
                logger.error(f"Error in completion callback for {entry.label}: {e}", exc_info=True)
