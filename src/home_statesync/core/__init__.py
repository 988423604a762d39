"""
Core components of home-statesync.

This package contains:
- bus: State change Event Bus
- log: Severity-gated logger
"""

from home_statesync.core.bus import EventBus, StateChange, StateFilter, Subscription
from home_statesync.core.log import StateLogger

__all__ = [
    "EventBus",
    "StateChange",
    "StateFilter",
    "Subscription",
    "StateLogger",
]
