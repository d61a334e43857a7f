"""Millisecond clock utilities.

All timestamps in shift-pilot are integer milliseconds since the Unix epoch.
This module is the single source of "now" so components can take a
``Clock`` callable and tests can inject a fake one.
"""

from __future__ import annotations

import time
from typing import Callable

# A zero-argument callable returning epoch milliseconds.
Clock = Callable[[], int]


def now_ms() -> int:
    """Return the current wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000
