"""
home-statesync: Serialized state writes for home-automation middleware.

This library sits between automation scripts and a backend adapter:
- Acknowledgment-gated, single-flight write queue
- Timeout fallback for writes the backend never confirms
- State change Event Bus and in-memory backend for testing
- Dict-based configuration
"""

from home_statesync.core.bus import EventBus, StateChange, StateFilter
from home_statesync.core.log import StateLogger
from home_statesync.sync import (
    DrainMode,
    MemoryStateBackend,
    ProcessingState,
    StateBackend,
    StateHandler,
    StateWriteError,
    SyncConfig,
    SynchronousProcessor,
)

__version__ = "0.1.0"

__all__ = [
    "EventBus",
    "StateChange",
    "StateFilter",
    "StateLogger",
    "DrainMode",
    "MemoryStateBackend",
    "ProcessingState",
    "StateBackend",
    "StateHandler",
    "StateWriteError",
    "SyncConfig",
    "SynchronousProcessor",
]
