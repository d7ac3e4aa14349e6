"""
Basel III credit-risk parameters for CORPORATE profiles.

    PD   Probability of Default   — bucketed on bureau credit score
    LGD  Loss Given Default       — collateralised vs unsecured
    EAD  Exposure at Default      — drawn + CCF × undrawn

Pure functions of the factor inputs. Out-of-domain inputs are
normalised (limit ≥ 0, utilization and CCF within [0, 1]).
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from sentinel_risk.schemas.risk_request import RiskFactors

RATE_QUANTUM = Decimal("0.000001")
AMOUNT_QUANTUM = Decimal("0.01")

# (exclusive lower credit score bound, PD)
PD_BUCKETS = [
    (750, Decimal("0.01")),
    (650, Decimal("0.03")),
    (550, Decimal("0.08")),
]
PD_FLOOR_BUCKET = Decimal("0.15")

LGD_SECURED = Decimal("0.25")
LGD_UNSECURED = Decimal("0.45")

DEFAULT_CCF = Decimal("0.75")


@dataclass(frozen=True)
class BaselMetrics:
    pd_score: Decimal
    lgd_score: Decimal
    ead_amount: Decimal


def _to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _clamp_unit(value: Decimal) -> Decimal:
    return min(max(value, Decimal("0")), Decimal("1"))


def probability_of_default(credit_score: int) -> Decimal:
    for lower, pd in PD_BUCKETS:
        if credit_score > lower:
            return pd.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
    return PD_FLOOR_BUCKET.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def loss_given_default(has_collateral: bool) -> Decimal:
    lgd = LGD_SECURED if has_collateral else LGD_UNSECURED
    return lgd.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def exposure_at_default(credit_limit, utilization, ccf=DEFAULT_CCF) -> Decimal:
    """
    EAD = current exposure + undrawn × CCF
        current exposure = limit × utilization
        undrawn          = limit − current exposure
    """
    limit = max(_to_decimal(credit_limit), Decimal("0"))
    used = _clamp_unit(_to_decimal(utilization))
    conversion = _clamp_unit(_to_decimal(ccf))

    current_exposure = limit * used
    undrawn = limit - current_exposure
    ead = current_exposure + undrawn * conversion
    return ead.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def calculate_basel_metrics(factors: RiskFactors, ccf=DEFAULT_CCF) -> BaselMetrics:
    return BaselMetrics(
        pd_score=probability_of_default(factors.credit_score),
        lgd_score=loss_given_default(factors.has_collateral),
        ead_amount=exposure_at_default(factors.credit_limit, factors.utilization, ccf),
    )
