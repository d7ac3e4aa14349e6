"""
Parametric Value-at-Risk.

    VaR = portfolio value × Z(confidence) × volatility × √(horizon days)

Z-scores are looked up by exact decimal value. A confidence level outside
the table silently uses the 95% quantile; this is a known approximation
(0.975 or 0.999 do NOT interpolate and do NOT snap to the nearest entry).
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, float, int, str]

Z_SCORES: dict[Decimal, Decimal] = {
    Decimal("0.90"): Decimal("1.28"),
    Decimal("0.95"): Decimal("1.65"),
    Decimal("0.99"): Decimal("2.33"),
}
DEFAULT_CONFIDENCE_LEVEL = Decimal("0.95")

VAR_QUANTUM = Decimal("0.01")


def _to_decimal(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def z_score(confidence_level: Number) -> Decimal:
    # Decimal("0.950") == Decimal("0.95") and they hash alike, so trailing zeros still match
    return Z_SCORES.get(_to_decimal(confidence_level), Z_SCORES[DEFAULT_CONFIDENCE_LEVEL])


def confidence_label(confidence_level: Number) -> str:
    """Bounded label for metrics: a table level, or "fallback" for anything served by the 95% default."""
    level = _to_decimal(confidence_level)
    for known in Z_SCORES:
        if known == level:
            return str(known)
    return "fallback"


def value_at_risk(
    portfolio_value: Number,
    volatility: Number,
    confidence_level: Number = DEFAULT_CONFIDENCE_LEVEL,
    time_horizon_days: int = 1,
) -> Decimal:
    value = max(_to_decimal(portfolio_value), Decimal("0"))
    sigma = max(_to_decimal(volatility), Decimal("0"))
    horizon = max(Decimal(int(time_horizon_days)), Decimal("0"))

    var = value * z_score(confidence_level) * sigma * horizon.sqrt()
    return var.quantize(VAR_QUANTUM, rounding=ROUND_HALF_UP)
