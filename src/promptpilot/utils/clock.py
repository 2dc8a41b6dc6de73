import time
from collections.abc import Callable

# Returns epoch milliseconds; injected into caches so tests can move time
Clock = Callable[[], int]


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000
