"""
Synchronous state writes for home-statesync.

Serializes writes to backends that confirm values asynchronously and
unreliably (e.g. the ioBroker HomeMatic RPC adapter).

Features:
- Global single-flight FIFO queue per handler
- Each write gated on an acknowledgment event or a timeout
- Rejected writes reported as an outcome, never retried
- Direct pass-through for targets that do not need serialization
- Poll-based (default) or event-driven release of finished writes
- wait_until_idle() barrier across queued writes
"""

from .models import (
    ProcessingState,
    ProcessorEvent,
    DrainMode,
    QueueEntry,
    CompletionCallback,
)
from .config import SyncConfig, default_config, config_schema
from .matchers import TargetMatcher, substring_matcher, prefix_matcher
from .adapter import StateBackend, StateWriteError, MemoryStateBackend
from .queue import StateQueue
from .processor import SynchronousProcessor
from .handler import StateHandler

__all__ = [
    "ProcessingState",
    "ProcessorEvent",
    "DrainMode",
    "QueueEntry",
    "CompletionCallback",
    "SyncConfig",
    "default_config",
    "config_schema",
    "TargetMatcher",
    "substring_matcher",
    "prefix_matcher",
    "StateBackend",
    "StateWriteError",
    "MemoryStateBackend",
    "StateQueue",
    "SynchronousProcessor",
    "StateHandler",
]
