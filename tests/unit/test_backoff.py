"""Tests for the watch reconnect backoff."""

from __future__ import annotations

import random

import pytest

from wufei.watcher.backoff import ExponentialBackoff


class TestExponentialBackoff:
    def test_delays_double_without_jitter(self) -> None:
        backoff = ExponentialBackoff(base_delay=1.0, max_delay=60.0, jitter_range=0.0)
        assert [backoff.next_delay() for _ in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_caps_at_max_delay(self) -> None:
        backoff = ExponentialBackoff(base_delay=10.0, max_delay=30.0, jitter_range=0.0)
        delays = [backoff.next_delay() for _ in range(5)]
        assert delays[-1] == 30.0

    def test_jitter_stays_within_range(self) -> None:
        backoff = ExponentialBackoff(base_delay=4.0, max_delay=4.0, jitter_range=0.25)
        for _ in range(100):
            assert 3.0 <= backoff.next_delay() <= 5.0

    def test_reset(self) -> None:
        backoff = ExponentialBackoff(base_delay=1.0, jitter_range=0.0)
        backoff.next_delay()
        backoff.next_delay()
        assert backoff.attempt == 2
        backoff.reset()
        assert backoff.attempt == 0
        assert backoff.next_delay() == 1.0

    def test_seeded_rng_is_reproducible(self) -> None:
        first = ExponentialBackoff(rng=random.Random(7))
        second = ExponentialBackoff(rng=random.Random(7))
        assert [first.next_delay() for _ in range(5)] == [second.next_delay() for _ in range(5)]

    def test_ceiling_does_not_advance(self) -> None:
        backoff = ExponentialBackoff(base_delay=2.0, jitter_range=0.0)
        assert backoff.ceiling() == 2.0
        assert backoff.ceiling() == 2.0
        assert backoff.attempt == 0

    def test_rejects_inverted_bounds(self) -> None:
        with pytest.raises(ValueError):
            ExponentialBackoff(base_delay=10.0, max_delay=1.0)
