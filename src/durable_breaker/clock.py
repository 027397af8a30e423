"""Injectable time sources."""

import time
from typing import Protocol


class Clock(Protocol):
    """Time source returning epoch seconds."""

    def now(self) -> float:
        """Return the current time as epoch seconds."""


class SystemClock:
    """Wall-clock time source backed by ``time.time``."""

    def now(self) -> float:
        return time.time()
