"""
Integration tests for the full scoring engine.
Tests end-to-end scoring for INDIVIDUAL and CORPORATE scenarios.
"""
from decimal import Decimal

from sentinel_risk.schemas.risk_request import ProfileType, RiskFactors
from sentinel_risk.schemas.risk_response import RiskCategory
from sentinel_risk.scoring.adjusters import NoOpScoreAdjuster, SeededRandomScoreAdjuster
from sentinel_risk.scoring.classifier import classify
from sentinel_risk.scoring.engine import ScoringEngine


def _make_factors(**overrides) -> RiskFactors:
    """Build a baseline 'average' customer, then override specific fields."""
    kwargs = {
        "credit_score": 720,
        "income": 60_000.0,
        "debt_to_income": 0.25,
        "age": 45,
        "has_collateral": False,
        "credit_limit": 200_000.0,
        "utilization": 0.5,
        "revenue": 2_000_000.0,
        "profit_margin": 0.12,
        "debt_to_equity": 0.8,
        "industry": "TECHNOLOGY",
    }
    kwargs.update(overrides)
    return RiskFactors(**kwargs)


class _FixedShift:
    def __init__(self, delta: str):
        self.delta = Decimal(delta)

    def adjust(self, profile_type, score):
        return score + self.delta


class TestIndividualScoring:
    def test_average_customer(self):
        score = ScoringEngine().score(ProfileType.INDIVIDUAL, _make_factors())
        # 50 + 0 - 1 - 1.5 - 0.5
        assert score == Decimal("47.00")
        assert classify(score) == RiskCategory.MEDIUM

    def test_strong_customer(self):
        f = _make_factors(credit_score=820, income=150_000.0, debt_to_income=0.1, age=50)
        assert ScoringEngine().score(ProfileType.INDIVIDUAL, f) == Decimal("35.00")

    def test_weak_customer(self):
        f = _make_factors(credit_score=500, income=10_000.0, debt_to_income=0.9, age=20)
        score = ScoringEngine().score(ProfileType.INDIVIDUAL, f)
        assert score == Decimal("70.50")
        assert classify(score) == RiskCategory.HIGH

    def test_corporate_fields_ignored(self):
        a = ScoringEngine().score(ProfileType.INDIVIDUAL, _make_factors())
        b = ScoringEngine().score(ProfileType.INDIVIDUAL, _make_factors(revenue=1.0, industry="MINING"))
        assert a == b


class TestCorporateScoring:
    def test_average_company(self):
        score = ScoringEngine().score(ProfileType.CORPORATE, _make_factors())
        # 40 - 2 - 3 - 1.75 - 0.5
        assert score == Decimal("32.75")
        assert classify(score) == RiskCategory.MEDIUM

    def test_strong_company(self):
        f = _make_factors(revenue=20_000_000.0, profit_margin=0.2, debt_to_equity=0.3, industry="HEALTHCARE")
        score = ScoringEngine().score(ProfileType.CORPORATE, f)
        assert score == Decimal("24.50")
        assert classify(score) == RiskCategory.LOW

    def test_distressed_company(self):
        f = _make_factors(revenue=50_000.0, profit_margin=-0.05, debt_to_equity=3.0, industry="MINING")
        score = ScoringEngine().score(ProfileType.CORPORATE, f)
        assert score == Decimal("61.00")
        assert classify(score) == RiskCategory.HIGH

    def test_unknown_industry_penalised(self):
        score = ScoringEngine().score(ProfileType.CORPORATE, _make_factors(industry="AGRICULTURE"))
        assert score == Decimal("33.75")


class TestContributions:
    def test_individual_breakdown(self):
        result = ScoringEngine().evaluate(ProfileType.INDIVIDUAL, _make_factors())
        names = [c.factor_name for c in result.contributions]
        assert names == ["creditScore", "income", "debtToIncome", "age"]
        by_name = {c.factor_name: c for c in result.contributions}
        assert by_name["debtToIncome"].weight == Decimal("0.30")
        assert by_name["debtToIncome"].weighted_points == Decimal("-1.5")

    def test_breakdown_sums_to_score(self):
        result = ScoringEngine().evaluate(ProfileType.CORPORATE, _make_factors())
        total = Decimal("40") + sum(c.weighted_points for c in result.contributions)
        assert total == result.risk_score

    def test_weights_sum_to_one(self):
        for profile_type in ProfileType:
            result = ScoringEngine().evaluate(profile_type, _make_factors())
            assert sum(c.weight for c in result.contributions) == Decimal("1")


class TestAdjusters:
    def test_noop_is_deterministic(self):
        engine = ScoringEngine(NoOpScoreAdjuster())
        scores = {engine.score(ProfileType.INDIVIDUAL, _make_factors()) for _ in range(10)}
        assert scores == {Decimal("47.00")}

    def test_adjusted_score_clamped_high(self):
        engine = ScoringEngine(_FixedShift("90"))
        assert engine.score(ProfileType.INDIVIDUAL, _make_factors()) == Decimal("100.00")

    def test_adjusted_score_clamped_low(self):
        engine = ScoringEngine(_FixedShift("-90"))
        assert engine.score(ProfileType.CORPORATE, _make_factors()) == Decimal("0.00")

    def test_rounds_half_up(self):
        engine = ScoringEngine(_FixedShift("0.005"))
        assert engine.score(ProfileType.INDIVIDUAL, _make_factors()) == Decimal("47.01")

    def test_bucket_score_kept_before_adjustment(self):
        result = ScoringEngine(_FixedShift("3")).evaluate(ProfileType.INDIVIDUAL, _make_factors())
        assert result.bucket_score == Decimal("47.0")
        assert result.risk_score == Decimal("50.00")

    def test_seeded_adjuster_reproducible(self):
        a = ScoringEngine(SeededRandomScoreAdjuster(seed=42))
        b = ScoringEngine(SeededRandomScoreAdjuster(seed=42))
        f = _make_factors()
        seq_a = [a.score(ProfileType.INDIVIDUAL, f) for _ in range(5)]
        seq_b = [b.score(ProfileType.INDIVIDUAL, f) for _ in range(5)]
        assert seq_a == seq_b

    def test_seeded_adjuster_within_bound(self):
        engine = ScoringEngine(SeededRandomScoreAdjuster(seed=7, bound=5.0))
        for _ in range(50):
            score = engine.score(ProfileType.INDIVIDUAL, _make_factors())
            assert Decimal("42.00") <= score <= Decimal("52.00")
