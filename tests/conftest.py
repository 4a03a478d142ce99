import pytest

from dirlock.config import LockConfig


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lock_dir(tmp_path):
    return str(tmp_path / "locks")


@pytest.fixture
def make_config(lock_dir):
    def _make(**overrides):
        values = dict(directory=lock_dir, name="build", poll_interval=1, max_wait=5, node="node-a")
        values.update(overrides)
        return LockConfig(**values)
    return _make
