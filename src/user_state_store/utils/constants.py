"""Shared constants and clock helpers."""

import time
from typing import Any

PAIR_KEY_SEPARATOR = ";"


def current_timestamp() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def is_number(value: Any) -> bool:
    """True for ints and floats; booleans do not count as numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


__all__ = ["PAIR_KEY_SEPARATOR", "current_timestamp", "is_number"]
