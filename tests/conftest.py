import io

import pytest

from life import Life


class FakeTerminal(io.StringIO):
    """A StringIO that counts writes and flushes, standing in for stdout.

    With ``fail_on_write=n`` the n-th write raises OSError once, like a
    stream that went away mid-frame; later writes succeed again.
    """

    def __init__(self, fail_on_write=None):
        super().__init__()
        self.flushes = 0
        self.writes = 0
        self.fail_on_write = fail_on_write

    def write(self, s):
        self.writes += 1
        if self.writes == self.fail_on_write:
            super().write(s[: len(s) // 2])
            raise OSError("broken pipe")
        return super().write(s)

    def flush(self):
        self.flushes += 1
        super().flush()


class FakeSleeper:
    """Records requested sleeps instead of sleeping, on its own clock.

    ``clock`` is the matching monotonic source: sleeping advances it, and
    tests can add work time with ``advance``. An optional hook runs after
    every sleep with the number of calls so far.
    """

    def __init__(self, hook=None):
        self.calls = []
        self.hook = hook
        self.now = 0.0

    def clock(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def __call__(self, seconds):
        self.calls.append(seconds)
        self.now += seconds
        if self.hook is not None:
            self.hook(len(self.calls))


@pytest.fixture
def terminal():
    return FakeTerminal()


@pytest.fixture
def sleeper():
    return FakeSleeper()


@pytest.fixture
def blinker():
    """A vertical blinker in the middle column of a 5x5 torus."""
    life = Life(5, 5, seed=0)
    life.seed_cells([(1, 0), (1, 1), (1, 2)])
    return life
