"""Shared test helpers."""


class FakeClock:
    """Manually advanced clock usable wherever a time.monotonic-like callable is expected."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now
