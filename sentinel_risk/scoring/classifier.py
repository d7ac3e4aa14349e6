"""
Risk category thresholds.

Half-open intervals, boundary belongs to the upper category:
    [0, 25)    → LOW
    [25, 50)   → MEDIUM
    [50, 75)   → HIGH
    [75, 100]  → CRITICAL
"""
from __future__ import annotations

from decimal import Decimal
from typing import Union

from sentinel_risk.schemas.risk_response import RiskCategory

CATEGORY_UPPER_BOUNDS = [
    (Decimal("25.0"), RiskCategory.LOW),
    (Decimal("50.0"), RiskCategory.MEDIUM),
    (Decimal("75.0"), RiskCategory.HIGH),
]


def classify(score: Union[Decimal, float, int]) -> RiskCategory:
    if not isinstance(score, Decimal):
        score = Decimal(str(score))
    for upper, category in CATEGORY_UPPER_BOUNDS:
        if score < upper:
            return category
    return RiskCategory.CRITICAL
