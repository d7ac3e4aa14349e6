"""
Service-level tests: profile lifecycle, VaR / metrics, summary.
Runs against the in-memory store and recording fakes from conftest.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import httpx
import pytest
from prometheus_client import REGISTRY

from sentinel_risk.core.exceptions import (
    ExternalServiceUnavailableError, NotFoundError, ProfileTypeMismatchError,
)
from sentinel_risk.schemas.risk_request import ProfileType
from sentinel_risk.schemas.risk_response import MetricType, RiskCategory, RiskEventType
from sentinel_risk.services.factor_provider import HttpFactorProvider
from sentinel_risk.services.portfolio_valuation import HttpPortfolioValuation
from sentinel_risk.services.profile_store import InMemoryRiskStore
from sentinel_risk.services.risk_service import RiskService

from conftest import (
    BrokenPublisher, FixedValuation, RecordingPublisher, StaticFactorProvider,
    UnavailableFactorProvider, YieldingFactorProvider, make_factors,
)


def _make_service(clock, provider=None, publisher=None, store=None) -> RiskService:
    return RiskService(
        factor_provider=provider or StaticFactorProvider(),
        store=store or InMemoryRiskStore(),
        publisher=publisher or RecordingPublisher(),
        valuation_provider=FixedValuation(),
        clock=clock,
    )


class TestCalculateRiskProfile:
    async def test_individual_profile(self, service, org_id, publisher):
        profile = await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        assert profile.risk_score == Decimal("47.00")
        assert profile.risk_category == RiskCategory.MEDIUM
        assert profile.pd_score is None
        assert profile.lgd_score is None
        assert profile.ead_amount is None
        assert "pd_score" not in profile.model_dump(exclude_none=True)

        assert len(publisher.events) == 1
        event = publisher.events[0]
        assert event.event_type == RiskEventType.RISK_PROFILE_CREATED
        assert event.profile == profile
        assert len(event.factor_contributions) == 4

    async def test_corporate_profile_has_basel_metrics(self, service, org_id, factor_provider):
        factor_provider.default = make_factors(credit_score=700, has_collateral=False,
                                               credit_limit=200_000.0, utilization=0.5)
        profile = await service.calculate_risk_profile(org_id, "ACME", ProfileType.CORPORATE)
        assert profile.risk_score == Decimal("32.75")
        assert profile.pd_score == Decimal("0.03")
        assert profile.lgd_score == Decimal("0.45")
        assert profile.ead_amount == Decimal("175000.00")

    async def test_recalculation_keeps_identity(self, service, org_id, clock, publisher):
        first = await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        clock.advance(minutes=5)
        second = await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)

        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.updated_at == first.updated_at + timedelta(minutes=5)
        assert second.risk_score == first.risk_score
        assert second.risk_category == first.risk_category
        assert [e.event_type for e in publisher.events] == [
            RiskEventType.RISK_PROFILE_CREATED,
            RiskEventType.RISK_PROFILE_RECALCULATED,
        ]
        assert len(await service.list_risk_profiles(org_id)) == 1

    async def test_recalculation_picks_up_new_factors(self, service, org_id, factor_provider):
        await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        factor_provider.default = make_factors(credit_score=500, income=10_000.0, debt_to_income=0.9, age=20)
        profile = await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        assert profile.risk_score == Decimal("70.50")
        assert profile.risk_category == RiskCategory.HIGH

    async def test_profile_type_change_rejected(self, service, org_id, publisher, factor_provider):
        await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        with pytest.raises(ProfileTypeMismatchError):
            await service.calculate_risk_profile(org_id, "C-1", ProfileType.CORPORATE)

        stored = await service.get_risk_profile(org_id, "C-1")
        assert stored.profile_type == ProfileType.INDIVIDUAL
        assert len(publisher.events) == 1
        assert factor_provider.calls == ["C-1"]

    async def test_same_customer_in_two_organizations(self, service, org_id):
        other_org = uuid4()
        a = await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        b = await service.calculate_risk_profile(other_org, "C-1", ProfileType.CORPORATE)
        assert a.id != b.id
        assert len(await service.list_risk_profiles(org_id)) == 1
        assert len(await service.list_risk_profiles(other_org)) == 1

    async def test_provider_failure_writes_nothing(self, clock, org_id):
        publisher = RecordingPublisher()
        service = _make_service(clock, provider=UnavailableFactorProvider(), publisher=publisher)
        with pytest.raises(ExternalServiceUnavailableError):
            await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)

        assert await service.list_risk_profiles(org_id) == []
        assert publisher.events == []

    async def test_publisher_failure_tolerated(self, clock, org_id):
        service = _make_service(clock, publisher=BrokenPublisher())
        profile = await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        assert profile.risk_score == Decimal("47.00")
        assert await service.get_risk_profile(org_id, "C-1") == profile

    async def test_concurrent_calculations_create_once(self, clock, org_id):
        publisher = RecordingPublisher()
        service = _make_service(clock, provider=YieldingFactorProvider(), publisher=publisher)

        profiles = await asyncio.gather(*[
            service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL) for _ in range(20)
        ])

        assert len({p.id for p in profiles}) == 1
        assert len(await service.list_risk_profiles(org_id)) == 1
        created = [e for e in publisher.events if e.event_type == RiskEventType.RISK_PROFILE_CREATED]
        assert len(created) == 1
        assert len(publisher.events) == 20


class TestProfileQueries:
    async def test_get_missing_profile(self, service, org_id):
        with pytest.raises(NotFoundError) as exc:
            await service.get_risk_profile(org_id, "NOPE")
        assert "NOPE" in str(exc.value)

    async def test_list_empty(self, service, org_id):
        assert await service.list_risk_profiles(org_id) == []

    async def test_list_in_creation_order(self, service, org_id, clock):
        for customer_id in ("C-3", "C-1", "C-2"):
            await service.calculate_risk_profile(org_id, customer_id, ProfileType.INDIVIDUAL)
            clock.advance(seconds=1)
        profiles = await service.list_risk_profiles(org_id)
        assert [p.customer_id for p in profiles] == ["C-3", "C-1", "C-2"]

    async def test_high_risk_sorted_descending(self, clock, org_id):
        provider = StaticFactorProvider({
            "STRONG": make_factors(credit_score=820, income=150_000.0, debt_to_income=0.1, age=50),
            "WEAK": make_factors(credit_score=500, income=10_000.0, debt_to_income=0.9, age=20),
            "AVERAGE": make_factors(),
        })
        service = _make_service(clock, provider=provider)
        for customer_id in ("STRONG", "WEAK", "AVERAGE"):
            await service.calculate_risk_profile(org_id, customer_id, ProfileType.INDIVIDUAL)

        above_40 = await service.list_high_risk_profiles(org_id, threshold=40.0)
        assert [p.customer_id for p in above_40] == ["WEAK", "AVERAGE"]

        default = await service.list_high_risk_profiles(org_id)
        assert [p.customer_id for p in default] == ["WEAK"]

    async def test_high_risk_threshold_inclusive(self, service, org_id):
        await service.calculate_risk_profile(org_id, "C-1", ProfileType.INDIVIDUAL)
        profiles = await service.list_high_risk_profiles(org_id, threshold=Decimal("47.00"))
        assert len(profiles) == 1


class TestMetrics:
    async def test_calculate_var(self, service, org_id, publisher):
        metric = await service.calculate_var(org_id)
        assert metric.metric_type == "VaR"
        assert metric.metric_value == Decimal("330000")
        assert metric.confidence_level == Decimal("0.95")
        assert metric.time_horizon == 1
        assert metric.currency == "USD"
        assert publisher.events[-1].event_type == RiskEventType.RISK_METRIC_RECORDED
        assert publisher.events[-1].metric == metric

    async def test_calculate_var_custom_level(self, service, org_id):
        metric = await service.calculate_var(org_id, confidence_level=Decimal("0.99"), time_horizon=4)
        assert metric.metric_value == Decimal("932000")

    async def test_calculate_var_unlisted_level_falls_back(self, service, org_id):
        metric = await service.calculate_var(org_id, confidence_level=Decimal("0.975"))
        assert metric.metric_value == Decimal("330000")
        assert metric.confidence_level == Decimal("0.975")

    async def test_record_metric_quantized(self, service, org_id):
        metric = await service.record_metric(org_id, "CAPITAL_RATIO", Decimal("0.12345678"))
        assert metric.metric_value == Decimal("0.123457")

    async def test_capital_ratio_latest_by_time(self, service, org_id, clock):
        now = clock()
        await service.record_metric(org_id, "CAPITAL_RATIO", Decimal("0.14"), observed_at=now)
        await service.record_metric(org_id, "CAPITAL_RATIO", Decimal("0.11"), observed_at=now - timedelta(days=2))
        latest = await service.get_capital_ratio(org_id)
        assert latest.metric_value == Decimal("0.14")

    async def test_capital_ratio_absent(self, service, org_id):
        assert await service.get_capital_ratio(org_id) is None

    async def test_metrics_window(self, service, org_id, clock):
        now = clock()
        for days_ago in (40, 10, 1):
            await service.record_metric(
                org_id, "VaR", Decimal(days_ago), observed_at=now - timedelta(days=days_ago)
            )
        metrics = await service.get_risk_metrics(org_id, "VaR")
        assert [m.metric_value for m in metrics] == [Decimal("10"), Decimal("1")]

        wide = await service.get_risk_metrics(org_id, "VaR", window_days=60)
        assert len(wide) == 3

    async def test_metrics_filtered_by_type(self, service, org_id):
        await service.calculate_var(org_id)
        assert await service.get_risk_metrics(org_id, "CVaR") == []

    def test_known_metric_types(self):
        assert [m.value for m in MetricType] == ["VaR", "CAPITAL_RATIO"]

    async def test_naive_observation_time_treated_as_utc(self, service, org_id, clock):
        await service.calculate_var(org_id)
        recorded = await service.record_metric(
            org_id, "VaR", Decimal("1"), observed_at=datetime(2026, 10, 1, 11, 0)
        )
        assert recorded.time == datetime(2026, 10, 1, 11, 0, tzinfo=timezone.utc)

        summary = await service.get_risk_summary(org_id)
        assert summary.latest_var.time == clock()

        series = await service.get_risk_metrics(org_id, "VaR")
        assert [m.metric_value for m in series] == [Decimal("1"), Decimal("330000")]

    async def test_var_counter_label_bounded(self, service, org_id):
        labels = {"confidence_level": "fallback"}
        before = REGISTRY.get_sample_value("sentinel_risk_var_calculations_total", labels) or 0.0
        await service.calculate_var(org_id, confidence_level=Decimal("0.9049"))
        assert REGISTRY.get_sample_value("sentinel_risk_var_calculations_total", labels) == before + 1
        assert REGISTRY.get_sample_value(
            "sentinel_risk_var_calculations_total", {"confidence_level": "0.9049"}
        ) is None


class TestRiskSummary:
    async def test_empty_organization(self, service, org_id):
        summary = await service.get_risk_summary(org_id)
        assert summary.total_profiles == 0
        assert summary.risk_distribution.low == 0
        assert summary.risk_distribution.critical == 0
        assert summary.latest_var is None
        dumped = summary.model_dump(exclude_none=True)
        assert "latest_var" not in dumped
        assert "latest_capital_ratio" not in dumped

    async def test_distribution_and_latest_metrics(self, clock, org_id):
        provider = StaticFactorProvider({
            "STRONG": make_factors(revenue=20_000_000.0, profit_margin=0.2, debt_to_equity=0.3,
                                   industry="HEALTHCARE"),
            "WEAK": make_factors(credit_score=500, income=10_000.0, debt_to_income=0.9, age=20),
            "AVERAGE": make_factors(),
        })
        service = _make_service(clock, provider=provider)
        await service.calculate_risk_profile(org_id, "STRONG", ProfileType.CORPORATE)
        await service.calculate_risk_profile(org_id, "WEAK", ProfileType.INDIVIDUAL)
        await service.calculate_risk_profile(org_id, "AVERAGE", ProfileType.INDIVIDUAL)
        var = await service.calculate_var(org_id)
        ratio = await service.record_metric(org_id, "CAPITAL_RATIO", Decimal("0.13"))

        summary = await service.get_risk_summary(org_id)
        assert summary.total_profiles == 3
        assert summary.risk_distribution.low == 1
        assert summary.risk_distribution.medium == 1
        assert summary.risk_distribution.high == 1
        assert summary.risk_distribution.critical == 0
        assert summary.latest_var == var
        assert summary.latest_capital_ratio == ratio
        assert summary.last_updated == clock()


class TestShutdown:
    async def test_aclose_releases_collaborators(self, clock, store):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        customers = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://customers")
        portfolio = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://portfolio")
        publisher = RecordingPublisher()
        service = RiskService(
            factor_provider=HttpFactorProvider("http://customers", client=customers),
            store=store,
            publisher=publisher,
            valuation_provider=HttpPortfolioValuation("http://portfolio", client=portfolio),
            clock=clock,
        )

        await service.aclose()

        assert customers.is_closed
        assert portfolio.is_closed
        assert publisher.stopped

    async def test_aclose_with_plain_collaborators(self, service, publisher):
        await service.aclose()
        assert publisher.stopped
