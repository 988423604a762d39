"""
Target matchers deciding which writes go through the queue.
"""

from typing import Callable, Iterable

TargetMatcher = Callable[[str], bool]


def substring_matcher(markers: Iterable[str]) -> TargetMatcher:
    """
    Match targets containing any of the markers.

    Example: substring_matcher(["hm-rpc."]) matches "hm-rpc.0.ABC123.1.STATE".
    """
    markers = tuple(markers)

    def _matches(target: str) -> bool:
        return any(marker in target for marker in markers)

    return _matches


def prefix_matcher(prefixes: Iterable[str]) -> TargetMatcher:
    """Match targets starting with any of the prefixes (adapter families)."""
    prefixes = tuple(prefixes)

    def _matches(target: str) -> bool:
        return target.startswith(prefixes)

    return _matches
