"""
Test doubles and constants shared across test modules.
"""

ALLOWED_ORIGIN = "https://tickets.example.com"


class FakeClock:
    """Manually advanced monotonic clock for rate gate tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
