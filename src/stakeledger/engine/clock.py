"""Time sources for the engine (integer seconds)."""

import time


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def __call__(self) -> int:
        return int(time.time())


class ManualClock:
    """Deterministic clock for tests and simulation."""

    def __init__(self, start: int = 0):
        self.now = int(start)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.now += int(seconds)
        return self.now

    def set(self, timestamp: int) -> int:
        if timestamp < self.now:
            raise ValueError("Clock cannot move backwards")
        self.now = int(timestamp)
        return self.now
