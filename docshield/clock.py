"""
Clock capability shared by every stateful component.

Components never read the wall clock directly; they receive a callable
returning the current time as integer epoch milliseconds.
"""

import time
from typing import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
