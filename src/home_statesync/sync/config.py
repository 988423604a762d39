"""
Configuration for the synchronous write queue.

SyncConfig is immutable. Hosts that keep configuration as plain dicts
(e.g. a config entry or a JSON file) use SyncConfig.from_dict().
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .models import DrainMode

DEFAULT_TIMEOUT = 4.0  # seconds
DEFAULT_POLL_INTERVAL = 0.5  # seconds
DEFAULT_SYNC_MARKERS: Tuple[str, ...] = ("hm-rpc.",)

# Legacy keys (milliseconds) -> field name (seconds)
_MS_KEYS = {
    "timeout_ms": "timeout",
    "poll_interval_ms": "poll_interval",
    "idle_check_interval_ms": "idle_check_interval",
}


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one StateHandler / SynchronousProcessor.

    Attributes:
        timeout: Seconds to wait for an acknowledgment (default: 4.0).
        poll_interval: Seconds between drain poller ticks (default: 0.5).
        idle_check_interval: Seconds between checks in wait_until_idle (default: 0.5).
        sync_markers: Substrings of targets that need serialized writes.
        drain_mode: POLL (periodic drain) or EVENT (release on outcome).
        debug: Emit debug trace lines for the queue.
    """

    timeout: float = DEFAULT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    idle_check_interval: float = DEFAULT_POLL_INTERVAL
    sync_markers: Tuple[str, ...] = DEFAULT_SYNC_MARKERS
    drain_mode: DrainMode = DrainMode.POLL
    debug: bool = True

    def __post_init__(self) -> None:
        for name in ("timeout", "poll_interval", "idle_check_interval"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive number, got {value!r}")

        if isinstance(self.sync_markers, str):
            object.__setattr__(self, "sync_markers", (self.sync_markers,))
        else:
            object.__setattr__(self, "sync_markers", tuple(self.sync_markers))

        if any(not marker for marker in self.sync_markers):
            raise ValueError("sync_markers must not contain empty strings")

        if not isinstance(self.drain_mode, DrainMode):
            raise ValueError(f"drain_mode must be a DrainMode, got {self.drain_mode!r}")

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SyncConfig":
        """
        Build a config from a plain dict.

        Unknown keys are ignored. Missing keys fall back to defaults.

        Args:
            config: Configuration dict (see config_schema())

        Returns:
            SyncConfig instance

        Raises:
            ValueError: If a value is invalid
        """
        kwargs: Dict[str, Any] = {}

        # Support legacy millisecond keys (the ioBroker scripts use ms)
        for ms_key, name in _MS_KEYS.items():
            if ms_key in config:
                kwargs[name] = config[ms_key] / 1000.0

        for name in ("timeout", "poll_interval", "idle_check_interval", "debug"):
            if name in config:
                kwargs[name] = config[name]

        if "sync_markers" in config:
            kwargs["sync_markers"] = config["sync_markers"]

        if "drain_mode" in config:
            mode = config["drain_mode"]
            try:
                kwargs["drain_mode"] = mode if isinstance(mode, DrainMode) else DrainMode(mode)
            except ValueError:
                raise ValueError(f"Unknown drain_mode '{mode}'") from None

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict (inverse of from_dict)."""
        return {
            "timeout": self.timeout,
            "poll_interval": self.poll_interval,
            "idle_check_interval": self.idle_check_interval,
            "sync_markers": list(self.sync_markers),
            "drain_mode": self.drain_mode.value,
            "debug": self.debug,
        }


def default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Default configuration dict
    """
    return SyncConfig().to_dict()


def config_schema() -> Dict[str, Any]:
    """
    Get JSON-schema-like definition for UI configuration.

    Returns:
        Schema dict that UIs can use to render configuration forms
    """
    return {
        "type": "object",
        "properties": {
            "timeout": {
                "type": "number",
                "title": "Acknowledgment timeout (seconds)",
                "default": DEFAULT_TIMEOUT,
                "exclusiveMinimum": 0,
            },
            "poll_interval": {
                "type": "number",
                "title": "Queue check interval (seconds)",
                "default": DEFAULT_POLL_INTERVAL,
                "exclusiveMinimum": 0,
            },
            "idle_check_interval": {
                "type": "number",
                "title": "Wait-until-idle check interval (seconds)",
                "default": DEFAULT_POLL_INTERVAL,
                "exclusiveMinimum": 0,
            },
            "sync_markers": {
                "type": "array",
                "items": {"type": "string"},
                "title": "Targets containing any of these are written one at a time",
                "default": list(DEFAULT_SYNC_MARKERS),
            },
            "drain_mode": {
                "type": "string",
                "enum": [mode.value for mode in DrainMode],
                "default": DrainMode.POLL.value,
            },
            "debug": {
                "type": "boolean",
                "title": "Debug trace of the write queue",
                "default": True,
            },
        },
    }
