"""
Composite Risk Scoring Engine

Orchestrates:
  1. Factor bucket points (INDIVIDUAL or CORPORATE factor set)
  2. Weighted sum on top of the profile type's base score
  3. Clamp to [0, 100]
  4. Score adjuster (no-op by default) + re-clamp
  5. Round half-up to 2 decimals

Convention: HIGHER score = HIGHER risk. Stateless apart from the
injected adjuster; safe to share across concurrent callers.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

import structlog

from sentinel_risk.schemas.risk_request import ProfileType, RiskFactors
from sentinel_risk.schemas.risk_response import FactorContribution
from sentinel_risk.scoring import factors
from sentinel_risk.scoring.adjusters import NoOpScoreAdjuster, ScoreAdjuster
from sentinel_risk.scoring.factors import FactorResult

logger = structlog.get_logger()


# ═══════════════════════════════════════════════════════════════
# Factor weights — each set must sum to 1.0
# ═══════════════════════════════════════════════════════════════
INDIVIDUAL_WEIGHTS: dict[str, Decimal] = {
    "creditScore": Decimal("0.40"),
    "income": Decimal("0.20"),
    "debtToIncome": Decimal("0.30"),
    "age": Decimal("0.10"),
}
CORPORATE_WEIGHTS: dict[str, Decimal] = {
    "revenue": Decimal("0.25"),
    "profitMargin": Decimal("0.30"),
    "debtToEquity": Decimal("0.35"),
    "industry": Decimal("0.10"),
}
assert sum(INDIVIDUAL_WEIGHTS.values()) == Decimal("1"), "Weights must sum to 1.0"
assert sum(CORPORATE_WEIGHTS.values()) == Decimal("1"), "Weights must sum to 1.0"

BASE_SCORES: dict[ProfileType, Decimal] = {
    ProfileType.INDIVIDUAL: Decimal("50.0"),
    ProfileType.CORPORATE: Decimal("40.0"),
}

MIN_SCORE = Decimal("0")
MAX_SCORE = Decimal("100")
SCORE_QUANTUM = Decimal("0.01")


def _individual_factors(f: RiskFactors) -> list[FactorResult]:
    return [
        factors.score_credit_score(f.credit_score),
        factors.score_income(f.income),
        factors.score_debt_to_income(f.debt_to_income),
        factors.score_age(f.age),
    ]


def _corporate_factors(f: RiskFactors) -> list[FactorResult]:
    return [
        factors.score_revenue(f.revenue),
        factors.score_profit_margin(f.profit_margin),
        factors.score_debt_to_equity(f.debt_to_equity),
        factors.score_industry(f.industry),
    ]


FACTOR_SETS: dict[ProfileType, tuple[Callable[[RiskFactors], list[FactorResult]], dict[str, Decimal]]] = {
    ProfileType.INDIVIDUAL: (_individual_factors, INDIVIDUAL_WEIGHTS),
    ProfileType.CORPORATE: (_corporate_factors, CORPORATE_WEIGHTS),
}


def clamp_score(score: Decimal) -> Decimal:
    return min(max(score, MIN_SCORE), MAX_SCORE)


@dataclass(frozen=True)
class ScoreResult:
    profile_type: ProfileType
    risk_score: Decimal
    bucket_score: Decimal
    contributions: list[FactorContribution]


class ScoringEngine:

    def __init__(self, adjuster: Optional[ScoreAdjuster] = None):
        self.adjuster = adjuster or NoOpScoreAdjuster()

    def score(self, profile_type: ProfileType, risk_factors: RiskFactors) -> Decimal:
        return self.evaluate(profile_type, risk_factors).risk_score

    def evaluate(self, profile_type: ProfileType, risk_factors: RiskFactors) -> ScoreResult:
        t0 = time.perf_counter_ns()
        factor_fn, weights = FACTOR_SETS[profile_type]

        # ── Step 1+2: weighted bucket points on top of the base ──
        total = BASE_SCORES[profile_type]
        contributions: list[FactorContribution] = []
        for result in factor_fn(risk_factors):
            weight = weights[result.factor_name]
            weighted = result.points * weight
            total += weighted
            contributions.append(
                FactorContribution(
                    factor_name=result.factor_name,
                    raw_value=result.raw_value,
                    bucket_label=result.bucket_label,
                    points=result.points,
                    weight=weight,
                    weighted_points=weighted,
                )
            )

        # ── Step 3: clamp ──
        bucket_score = clamp_score(total)

        # ── Step 4+5: adjust, re-clamp, round ──
        adjusted = clamp_score(self.adjuster.adjust(profile_type, bucket_score))
        risk_score = adjusted.quantize(SCORE_QUANTUM, rounding=ROUND_HALF_UP)

        logger.debug(
            "risk_score_computed",
            profile_type=profile_type.value,
            bucket_score=str(bucket_score),
            risk_score=str(risk_score),
            elapsed_us=(time.perf_counter_ns() - t0) // 1_000,
        )

        return ScoreResult(
            profile_type=profile_type,
            risk_score=risk_score,
            bucket_score=bucket_score,
            contributions=contributions,
        )
