"""
Three-point samplers and the story-point to triplet mapping.

The simulator only talks to the ThreePointSampler interface, so tests can
swap the Beta-PERT sampler for a deterministic one without touching the
simulation loop.
"""

import math
from abc import ABC, abstractmethod

import numpy as np

PERT_LAMBDA = 4.0

FIBONACCI_SERIES = (
    0.0, 1.0, 2.0, 3.0, 5.0, 8.0, 13.0, 21.0, 34.0, 55.0, 89.0, 144.0,
    233.0, 377.0, 610.0, 987.0,
)


def validate_triplet(optimistic, most_likely, pessimistic):
    """Raise ValueError unless optimistic <= most_likely <= pessimistic (all finite)."""
    values = (optimistic, most_likely, pessimistic)
    if any(v is None or not math.isfinite(v) for v in values):
        raise ValueError(f"estimate values must be finite numbers, got {values}")
    if pessimistic < optimistic:
        raise ValueError(f"pessimistic {pessimistic} is below optimistic {optimistic}")
    if most_likely < optimistic or most_likely > pessimistic:
        raise ValueError(
            f"most likely {most_likely} is outside [{optimistic}, {pessimistic}]")


def fibonacci_bounds(value):
    """Nearest surrounding terms of FIBONACCI_SERIES as (lower, upper).

    Values at or below 0 map to (0, 1); values above the last term map to
    (987, 987). A value equal to a term uses that term as its upper bound.
    """
    if value <= FIBONACCI_SERIES[0]:
        return FIBONACCI_SERIES[0], FIBONACCI_SERIES[1]
    for lower, upper in zip(FIBONACCI_SERIES, FIBONACCI_SERIES[1:]):
        if value <= upper:
            return lower, upper
    last = FIBONACCI_SERIES[-1]
    return last, last


def story_point_triplet(value):
    """Story points become (lower Fibonacci bound, value, upper Fibonacci bound)."""
    lower, upper = fibonacci_bounds(value)
    # past the end of the series there is no upper term; use the value as a constant
    if value > upper:
        return value, value, value
    return lower, value, upper


# ── Samplers ─────────────────────────────────────────────────────────────────

class ThreePointSampler(ABC):
    """Draws one value from an (optimistic, most likely, pessimistic) triplet."""

    @abstractmethod
    def sample(self, optimistic, most_likely, pessimistic):
        ...


class BetaPertSampler(ThreePointSampler):
    """Beta-PERT sampler backed by an owned numpy Generator."""

    def __init__(self, rng=None, seed=None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def sample(self, optimistic, most_likely, pessimistic):
        validate_triplet(optimistic, most_likely, pessimistic)
        spread = pessimistic - optimistic
        if spread == 0:
            return float(optimistic)
        alpha = 1.0 + PERT_LAMBDA * (most_likely - optimistic) / spread
        beta = 1.0 + PERT_LAMBDA * (pessimistic - most_likely) / spread
        return float(optimistic + self.rng.beta(alpha, beta) * spread)


class MostLikelySampler(ThreePointSampler):
    """Always returns the most likely value. Used for deterministic runs."""

    def sample(self, optimistic, most_likely, pessimistic):
        validate_triplet(optimistic, most_likely, pessimistic)
        return float(most_likely)
