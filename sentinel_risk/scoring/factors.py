"""
Scoring Factor Definitions — INDIVIDUAL and CORPORATE

Each factor:
  1. Takes one raw attribute from RiskFactors
  2. Maps it to a bucket
  3. Returns the points for that bucket

Weights and the base score are applied in the engine, not here.

Convention: HIGHER points = HIGHER risk (positive is bad).
Every bucket function is total: any numeric input, including
negative or otherwise out-of-domain values, lands in some bucket.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class FactorResult:
    factor_name: str
    raw_value: str
    bucket_label: str
    points: Decimal


# ═══════════════════════════════════════════════════════════════
# INDIVIDUAL 1. CREDIT SCORE  (weight = 0.40)
#    Bureau score, typically 300-850, higher = better
# ═══════════════════════════════════════════════════════════════
def score_credit_score(credit_score: int) -> FactorResult:
    raw = str(credit_score)
    if credit_score >= 800:
        return FactorResult("creditScore", raw, "≥800 (Exceptional)", Decimal("-20"))
    elif credit_score >= 750:
        return FactorResult("creditScore", raw, "750-799 (Very good)", Decimal("-10"))
    elif credit_score >= 650:
        return FactorResult("creditScore", raw, "650-749 (Good)", Decimal("0"))
    elif credit_score >= 550:
        return FactorResult("creditScore", raw, "550-649 (Fair)", Decimal("15"))
    else:
        return FactorResult("creditScore", raw, "<550 (Poor)", Decimal("30"))


# ═══════════════════════════════════════════════════════════════
# INDIVIDUAL 2. ANNUAL INCOME  (weight = 0.20)
# ═══════════════════════════════════════════════════════════════
def score_income(income: float) -> FactorResult:
    raw = f"{income:.0f}"
    if income >= 100_000:
        return FactorResult("income", raw, "≥100k", Decimal("-10"))
    elif income >= 50_000:
        return FactorResult("income", raw, "50k-100k", Decimal("-5"))
    elif income >= 25_000:
        return FactorResult("income", raw, "25k-50k", Decimal("0"))
    else:
        return FactorResult("income", raw, "<25k", Decimal("10"))


# ═══════════════════════════════════════════════════════════════
# INDIVIDUAL 3. DEBT-TO-INCOME  (weight = 0.30)
# ═══════════════════════════════════════════════════════════════
def score_debt_to_income(debt_to_income: float) -> FactorResult:
    raw = f"{debt_to_income:.2f}"
    if debt_to_income <= 0.2:
        return FactorResult("debtToIncome", raw, "≤20%", Decimal("-15"))
    elif debt_to_income <= 0.3:
        return FactorResult("debtToIncome", raw, "20-30%", Decimal("-5"))
    elif debt_to_income <= 0.4:
        return FactorResult("debtToIncome", raw, "30-40%", Decimal("5"))
    else:
        return FactorResult("debtToIncome", raw, ">40%", Decimal("20"))


# ═══════════════════════════════════════════════════════════════
# INDIVIDUAL 4. AGE  (weight = 0.10)
# ═══════════════════════════════════════════════════════════════
def score_age(age: int) -> FactorResult:
    raw = str(age)
    if age >= 40:
        return FactorResult("age", raw, "40+", Decimal("-5"))
    elif age >= 25:
        return FactorResult("age", raw, "25-39", Decimal("0"))
    else:
        return FactorResult("age", raw, "<25", Decimal("5"))


# ═══════════════════════════════════════════════════════════════
# CORPORATE 1. ANNUAL REVENUE  (weight = 0.25)
# ═══════════════════════════════════════════════════════════════
def score_revenue(revenue: float) -> FactorResult:
    raw = f"{revenue:.0f}"
    if revenue >= 10_000_000:
        return FactorResult("revenue", raw, "≥10M", Decimal("-15"))
    elif revenue >= 1_000_000:
        return FactorResult("revenue", raw, "1M-10M", Decimal("-8"))
    elif revenue >= 100_000:
        return FactorResult("revenue", raw, "100k-1M", Decimal("0"))
    else:
        return FactorResult("revenue", raw, "<100k", Decimal("15"))


# ═══════════════════════════════════════════════════════════════
# CORPORATE 2. PROFIT MARGIN  (weight = 0.30)
# ═══════════════════════════════════════════════════════════════
def score_profit_margin(profit_margin: float) -> FactorResult:
    raw = f"{profit_margin:.4f}"
    if profit_margin >= 0.15:
        return FactorResult("profitMargin", raw, "≥15%", Decimal("-20"))
    elif profit_margin >= 0.10:
        return FactorResult("profitMargin", raw, "10-15%", Decimal("-10"))
    elif profit_margin >= 0.05:
        return FactorResult("profitMargin", raw, "5-10%", Decimal("0"))
    elif profit_margin >= 0.0:
        return FactorResult("profitMargin", raw, "0-5%", Decimal("10"))
    else:
        return FactorResult("profitMargin", raw, "<0% (Loss-making)", Decimal("25"))


# ═══════════════════════════════════════════════════════════════
# CORPORATE 3. DEBT-TO-EQUITY  (weight = 0.35)
# ═══════════════════════════════════════════════════════════════
def score_debt_to_equity(debt_to_equity: float) -> FactorResult:
    raw = f"{debt_to_equity:.2f}"
    if debt_to_equity <= 0.5:
        return FactorResult("debtToEquity", raw, "≤0.5", Decimal("-15"))
    elif debt_to_equity <= 1.0:
        return FactorResult("debtToEquity", raw, "0.5-1.0", Decimal("-5"))
    elif debt_to_equity <= 2.0:
        return FactorResult("debtToEquity", raw, "1.0-2.0", Decimal("10"))
    else:
        return FactorResult("debtToEquity", raw, ">2.0", Decimal("25"))


# ═══════════════════════════════════════════════════════════════
# CORPORATE 4. INDUSTRY  (weight = 0.10)
# ═══════════════════════════════════════════════════════════════
LOW_RISK_INDUSTRIES = frozenset({"TECHNOLOGY", "HEALTHCARE"})
NEUTRAL_INDUSTRIES = frozenset({"MANUFACTURING", "RETAIL"})
HIGH_RISK_INDUSTRIES = frozenset({"ENERGY", "MINING"})


def score_industry(industry: str) -> FactorResult:
    name = (industry or "").strip().upper()
    raw = name or "N/A"
    if name in LOW_RISK_INDUSTRIES:
        return FactorResult("industry", raw, "Technology/Healthcare", Decimal("-5"))
    elif name in NEUTRAL_INDUSTRIES:
        return FactorResult("industry", raw, "Manufacturing/Retail", Decimal("0"))
    elif name in HIGH_RISK_INDUSTRIES:
        return FactorResult("industry", raw, "Energy/Mining", Decimal("10"))
    else:
        return FactorResult("industry", raw, "Other", Decimal("5"))
