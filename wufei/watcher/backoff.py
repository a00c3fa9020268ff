"""Delay policy for re-establishing the cluster event watch."""

from __future__ import annotations

import random


class ExponentialBackoff:
    """Exponential reconnect delay with proportional jitter.

    The n-th consecutive failure waits ``min(base * multiplier**n, max_delay)``
    scaled by a random factor in ``1 +/- jitter_range``.  The watcher calls
    ``reset()`` whenever the stream delivers an event, so a flapping watch
    starts over at ``base_delay``.
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        multiplier: float = 2.0,
        jitter_range: float = 0.2,
        rng: random.Random | None = None,
    ) -> None:
        if base_delay < 0 or max_delay < base_delay:
            raise ValueError(f"invalid backoff bounds: base={base_delay} max={max_delay}")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self.jitter_range = jitter_range
        self._rng = rng or random.Random()
        self._failures = 0

    @property
    def attempt(self) -> int:
        """Consecutive failures since the last reset."""
        return self._failures

    def ceiling(self) -> float:
        return min(self.base_delay * self.multiplier**self._failures, self.max_delay)

    def next_delay(self) -> float:
        delay = self.ceiling()
        if self.jitter_range:
            delay *= 1 + self._rng.uniform(-self.jitter_range, self.jitter_range)
        self._failures += 1
        return max(0.0, delay)

    def reset(self) -> None:
        self._failures = 0
