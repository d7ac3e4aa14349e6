"""
Risk Service — profile lifecycle and portfolio metrics.

Profile path:
  fetch factors → score → classify → (CORPORATE) Basel PD/LGD/EAD
  → store.write_or_replace → publish one event

VaR path:
  fetch valuation → VaR → store.append_metric → publish one event

Publishing happens after the write is committed and never fails the call.
Collaborators (factor provider, valuation provider, publisher) may be
sync or async.
"""
from __future__ import annotations

import inspect
import time
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Awaitable, Callable, Optional, TypeVar, Union
from uuid import UUID

import structlog

from sentinel_risk.core.exceptions import NotFoundError, ProfileTypeMismatchError
from sentinel_risk.core.metrics import (
    EVENT_PUBLISH_FAILURES,
    PROFILE_CALCULATION_SECONDS,
    PROFILES_CALCULATED,
    VAR_CALCULATIONS,
)
from sentinel_risk.schemas.risk_request import ProfileType
from sentinel_risk.schemas.risk_response import (
    MetricType,
    RiskCategory,
    RiskDistribution,
    RiskEvent,
    RiskEventType,
    RiskMetric,
    RiskProfile,
    RiskSummary,
)
from sentinel_risk.scoring.basel import calculate_basel_metrics
from sentinel_risk.scoring.classifier import classify
from sentinel_risk.scoring.engine import ScoringEngine
from sentinel_risk.scoring.portfolio import DEFAULT_CONFIDENCE_LEVEL, confidence_label, value_at_risk
from sentinel_risk.services.event_publisher import EventPublisher
from sentinel_risk.services.factor_provider import RiskFactorProvider
from sentinel_risk.services.portfolio_valuation import PortfolioValuationProvider
from sentinel_risk.services.profile_store import MetricFields, ProfileFields, RiskProfileStore

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_HIGH_RISK_THRESHOLD = Decimal("70.0")
DEFAULT_METRIC_WINDOW_DAYS = 30
METRIC_QUANTUM = Decimal("0.000001")


async def _resolve(value: Union[T, Awaitable[T]]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # naive observation times are taken as UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class RiskService:

    def __init__(
        self,
        factor_provider: RiskFactorProvider,
        store: RiskProfileStore,
        publisher: EventPublisher,
        valuation_provider: PortfolioValuationProvider,
        scoring_engine: Optional[ScoringEngine] = None,
        clock: Callable[[], datetime] = _utcnow,
        default_currency: str = "USD",
    ):
        self.factor_provider = factor_provider
        self.store = store
        self.publisher = publisher
        self.valuation_provider = valuation_provider
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.clock = clock
        self.default_currency = default_currency

    # ═══════════════════════════════════════════════════════════════
    # Profiles
    # ═══════════════════════════════════════════════════════════════

    async def calculate_risk_profile(
        self,
        organization_id: UUID,
        customer_id: str,
        profile_type: ProfileType,
    ) -> RiskProfile:
        t0 = time.perf_counter()

        # Reject before any work if the stored type differs; write_or_replace re-checks under lock
        existing = await self.store.lookup(organization_id, customer_id)
        if existing is not None and existing.profile_type != profile_type:
            raise ProfileTypeMismatchError(customer_id, existing.profile_type.value, profile_type.value)

        # Raises ExternalServiceUnavailableError before anything is written
        risk_factors = await _resolve(self.factor_provider.fetch_factors(customer_id))

        scored = self.scoring_engine.evaluate(profile_type, risk_factors)
        fields = ProfileFields(
            profile_type=profile_type,
            risk_score=scored.risk_score,
            risk_category=classify(scored.risk_score),
        )
        if profile_type == ProfileType.CORPORATE:
            basel = calculate_basel_metrics(risk_factors)
            fields = replace(
                fields, pd_score=basel.pd_score, lgd_score=basel.lgd_score, ead_amount=basel.ead_amount
            )

        now = self.clock()
        profile, created = await self.store.write_or_replace(organization_id, customer_id, fields, now)

        transition = "created" if created else "recalculated"
        PROFILES_CALCULATED.labels(profile_type=profile_type.value, transition=transition).inc()
        PROFILE_CALCULATION_SECONDS.observe(time.perf_counter() - t0)
        logger.info(
            "risk_profile_calculated",
            organization_id=str(organization_id),
            customer_id=customer_id,
            profile_id=str(profile.id),
            profile_type=profile_type.value,
            transition=transition,
            score=str(profile.risk_score),
            category=profile.risk_category.value,
        )

        event_type = (
            RiskEventType.RISK_PROFILE_CREATED if created else RiskEventType.RISK_PROFILE_RECALCULATED
        )
        await self._publish(
            RiskEvent(
                event_id=uuid.uuid4(),
                event_type=event_type,
                organization_id=organization_id,
                occurred_at=now,
                profile=profile,
                factor_contributions=scored.contributions,
            )
        )
        return profile

    async def get_risk_profile(self, organization_id: UUID, customer_id: str) -> RiskProfile:
        profile = await self.store.lookup(organization_id, customer_id)
        if profile is None:
            raise NotFoundError("RiskProfile", "customerId", customer_id)
        return profile

    async def list_risk_profiles(self, organization_id: UUID) -> list[RiskProfile]:
        return await self.store.list_profiles(organization_id)

    async def list_high_risk_profiles(
        self,
        organization_id: UUID,
        threshold: Union[Decimal, float] = DEFAULT_HIGH_RISK_THRESHOLD,
    ) -> list[RiskProfile]:
        return await self.store.list_profiles_above(organization_id, Decimal(str(threshold)))

    # ═══════════════════════════════════════════════════════════════
    # Metrics
    # ═══════════════════════════════════════════════════════════════

    async def calculate_var(
        self,
        organization_id: UUID,
        confidence_level: Union[Decimal, float] = DEFAULT_CONFIDENCE_LEVEL,
        time_horizon: int = 1,
    ) -> RiskMetric:
        confidence = Decimal(str(confidence_level))
        valuation = await _resolve(self.valuation_provider.fetch_valuation(organization_id))
        var = value_at_risk(valuation.portfolio_value, valuation.volatility, confidence, time_horizon)

        VAR_CALCULATIONS.labels(confidence_level=confidence_label(confidence)).inc()
        logger.info(
            "var_calculated",
            organization_id=str(organization_id),
            confidence_level=str(confidence),
            time_horizon=time_horizon,
            var=str(var),
        )
        return await self._append_metric(
            MetricFields(
                organization_id=organization_id,
                metric_type=MetricType.VAR.value,
                metric_value=var,
                time=self.clock(),
                currency=self.default_currency,
                confidence_level=confidence,
                time_horizon=time_horizon,
            )
        )

    async def record_metric(
        self,
        organization_id: UUID,
        metric_type: str,
        metric_value: Union[Decimal, float],
        currency: Optional[str] = None,
        confidence_level: Optional[Decimal] = None,
        time_horizon: Optional[int] = None,
        observed_at: Optional[datetime] = None,
    ) -> RiskMetric:
        """Append an externally computed metric (e.g. CAPITAL_RATIO from treasury)."""
        return await self._append_metric(
            MetricFields(
                organization_id=organization_id,
                metric_type=metric_type,
                metric_value=Decimal(str(metric_value)),
                time=_as_utc(observed_at) if observed_at is not None else self.clock(),
                currency=currency or self.default_currency,
                confidence_level=confidence_level,
                time_horizon=time_horizon,
            )
        )

    async def get_capital_ratio(self, organization_id: UUID) -> Optional[RiskMetric]:
        return await self.store.latest_metric(organization_id, MetricType.CAPITAL_RATIO.value)

    async def get_risk_metrics(
        self,
        organization_id: UUID,
        metric_type: str,
        window_days: int = DEFAULT_METRIC_WINDOW_DAYS,
    ) -> list[RiskMetric]:
        end = self.clock()
        start = end - timedelta(days=window_days)
        return await self.store.metrics_between(organization_id, metric_type, start, end)

    async def get_risk_summary(self, organization_id: UUID) -> RiskSummary:
        counts = await self.store.count_by_category(organization_id)
        distribution = RiskDistribution(
            low=counts.get(RiskCategory.LOW, 0),
            medium=counts.get(RiskCategory.MEDIUM, 0),
            high=counts.get(RiskCategory.HIGH, 0),
            critical=counts.get(RiskCategory.CRITICAL, 0),
        )
        return RiskSummary(
            organization_id=organization_id,
            total_profiles=distribution.low + distribution.medium + distribution.high + distribution.critical,
            risk_distribution=distribution,
            latest_var=await self.store.latest_metric(organization_id, MetricType.VAR.value),
            latest_capital_ratio=await self.store.latest_metric(organization_id, MetricType.CAPITAL_RATIO.value),
            last_updated=self.clock(),
        )

    async def aclose(self) -> None:
        """Release collaborator resources (HTTP pools, Kafka producer). Called on shutdown."""
        await self.factor_provider.aclose()
        await self.valuation_provider.aclose()
        await self.publisher.stop()
        logger.info("risk_service_closed")

    # ═══════════════════════════════════════════════════════════════
    # Internals
    # ═══════════════════════════════════════════════════════════════

    async def _append_metric(self, fields: MetricFields) -> RiskMetric:
        fields = replace(fields, metric_value=fields.metric_value.quantize(METRIC_QUANTUM, rounding=ROUND_HALF_UP))
        metric = await self.store.append_metric(fields, self.clock())
        await self._publish(
            RiskEvent(
                event_id=uuid.uuid4(),
                event_type=RiskEventType.RISK_METRIC_RECORDED,
                organization_id=metric.organization_id,
                occurred_at=metric.created_at,
                metric=metric,
            )
        )
        return metric

    async def _publish(self, event: RiskEvent) -> None:
        try:
            await _resolve(self.publisher.publish(event))
        except Exception as e:
            # Fire-and-forget: the write is already committed
            EVENT_PUBLISH_FAILURES.labels(event_type=event.event_type.value).inc()
            logger.warning(
                "risk_event_publish_failed",
                event_id=str(event.event_id),
                event_type=event.event_type.value,
                error=str(e),
            )
