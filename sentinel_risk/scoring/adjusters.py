"""
Score adjusters — the pluggable step applied after the bucket score.

The bucket score is the deterministic part of the model. An adjuster may
shift it by a bounded amount (today: uniform noise for simulations;
later: a predictive model). Production builds use the no-op adjuster.
"""
from __future__ import annotations

import random
import threading
from decimal import Decimal
from typing import Optional, Protocol

from sentinel_risk.core.config import Settings
from sentinel_risk.schemas.risk_request import ProfileType


class ScoreAdjuster(Protocol):
    def adjust(self, profile_type: ProfileType, score: Decimal) -> Decimal:
        """Return the adjusted score. The engine re-clamps the result."""
        ...


class NoOpScoreAdjuster:
    """Deterministic: returns the score unchanged."""

    def adjust(self, profile_type: ProfileType, score: Decimal) -> Decimal:
        return score


class SeededRandomScoreAdjuster:
    """
    Adds uniform noise in [-bound, +bound].
    Two adjusters built with the same seed produce the same sequence.
    """

    def __init__(self, seed: Optional[int] = None, bound: float = 5.0):
        self.seed = seed
        self.bound = abs(bound)
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def adjust(self, profile_type: ProfileType, score: Decimal) -> Decimal:
        with self._lock:
            variance = self._rng.uniform(-self.bound, self.bound)
        return score + Decimal(str(variance))


def build_score_adjuster(settings: Settings) -> ScoreAdjuster:
    if settings.score_adjuster == "seeded_random":
        return SeededRandomScoreAdjuster(settings.score_adjuster_seed, settings.score_adjuster_bound)
    return NoOpScoreAdjuster()
