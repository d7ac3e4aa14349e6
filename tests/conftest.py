"""
Shared fakes for the service / API tests.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from sentinel_risk.core.exceptions import ExternalServiceUnavailableError
from sentinel_risk.schemas.risk_request import RiskFactors
from sentinel_risk.scoring.engine import ScoringEngine
from sentinel_risk.services.event_publisher import EventPublisher
from sentinel_risk.services.factor_provider import RiskFactorProvider
from sentinel_risk.services.portfolio_valuation import PortfolioValuation, PortfolioValuationProvider
from sentinel_risk.services.profile_store import InMemoryRiskStore
from sentinel_risk.services.risk_service import RiskService


def make_factors(**overrides) -> RiskFactors:
    """Baseline: MEDIUM individual (47.00), MEDIUM corporate (32.75)."""
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


class StaticFactorProvider(RiskFactorProvider):
    name = "static"

    def __init__(self, factors_by_customer: dict[str, RiskFactors] | None = None, default: RiskFactors | None = None):
        self.factors_by_customer = factors_by_customer or {}
        self.default = default or make_factors()
        self.calls: list[str] = []

    def fetch_factors(self, customer_id: str) -> RiskFactors:
        self.calls.append(customer_id)
        return self.factors_by_customer.get(customer_id, self.default)


class YieldingFactorProvider(StaticFactorProvider):
    """Async variant that yields to the loop, so concurrent callers interleave."""

    async def fetch_factors(self, customer_id: str) -> RiskFactors:
        await asyncio.sleep(0)
        return super().fetch_factors(customer_id)


class UnavailableFactorProvider(RiskFactorProvider):
    name = "customer-data"

    def fetch_factors(self, customer_id: str) -> RiskFactors:
        raise ExternalServiceUnavailableError(self.name, "connection refused")


class FixedValuation(PortfolioValuationProvider):
    name = "fixed"

    def __init__(self, portfolio_value: str = "1000000", volatility: str = "0.2"):
        self.valuation = PortfolioValuation(Decimal(portfolio_value), Decimal(volatility))

    def fetch_valuation(self, organization_id: UUID) -> PortfolioValuation:
        return self.valuation


class RecordingPublisher(EventPublisher):
    def __init__(self):
        self.events = []
        self.stopped = False

    async def publish(self, event) -> None:
        self.events.append(event)

    async def stop(self) -> None:
        self.stopped = True


class BrokenPublisher(EventPublisher):
    def publish(self, event) -> None:
        raise RuntimeError("broker unreachable")


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def org_id() -> UUID:
    return uuid4()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def factor_provider() -> StaticFactorProvider:
    return StaticFactorProvider()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def store() -> InMemoryRiskStore:
    return InMemoryRiskStore()


@pytest.fixture
def service(factor_provider, store, publisher, clock) -> RiskService:
    return RiskService(
        factor_provider=factor_provider,
        store=store,
        publisher=publisher,
        valuation_provider=FixedValuation(),
        scoring_engine=ScoringEngine(),
        clock=clock,
    )
