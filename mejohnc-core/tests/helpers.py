"""Shared test doubles."""


class FakeClock:
    """Manually advanced clock for time-based breaker transitions."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingObserver:
    """Collects state transitions."""

    def __init__(self):
        self.transitions = []

    def on_state_change(self, name, old_state, new_state):
        self.transitions.append((name, old_state, new_state))


class CountingOperation:
    """Async operation that succeeds or fails on demand and counts calls."""

    def __init__(self, result="ok", error=None):
        self.result = result
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result
