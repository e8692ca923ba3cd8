"""Tests for RateLimitGate."""

from issueboard.sync.backoff import RateLimitGate


class Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestRateLimitGate:
    """Tests for per-key blocking."""

    def test_unblocked_key_is_free(self):
        assert RateLimitGate(Clock()).remaining("p1") is None

    def test_block_expires(self):
        clock = Clock()
        gate = RateLimitGate(clock)
        gate.block("p1", 30)

        clock.now = 29
        assert gate.remaining("p1") == 1
        clock.now = 30
        assert gate.remaining("p1") is None

    def test_blocks_are_per_key(self):
        gate = RateLimitGate(Clock())
        gate.block("p1", 30)
        assert gate.remaining("p2") is None

    def test_longer_block_wins(self):
        clock = Clock()
        gate = RateLimitGate(clock)
        gate.block("p1", 60)
        gate.block("p1", 10)

        clock.now = 30
        assert gate.remaining("p1") == 30

    def test_await_cycle_holds_until_scheduled(self):
        """A cycle-bound block outlives retry_after until a scheduled caller asks."""
        clock = Clock()
        gate = RateLimitGate(clock)
        gate.block("p1", 5, await_cycle=True)

        clock.now = 10
        assert gate.remaining("p1") == 0.0
        assert gate.remaining("p1", scheduled=True) is None
        assert gate.remaining("p1") is None

    def test_scheduled_still_waits_for_retry_after(self):
        clock = Clock()
        gate = RateLimitGate(clock)
        gate.block("p1", 30, await_cycle=True)

        clock.now = 10
        assert gate.remaining("p1", scheduled=True) == 20

    def test_clear(self):
        gate = RateLimitGate(Clock())
        gate.block("p1", 30)
        gate.clear("p1")
        assert gate.remaining("p1") is None
