"""
Risk profile / metric store boundary.

The store owns identity (primary keys) and decides insert vs update.
Upsert is a two-step contract:

    lookup(org, customer)                       → RiskProfile | None
    write_or_replace(org, customer, fields, now) → (RiskProfile, created)

write_or_replace is atomic per natural key: concurrent writers for the
same (org, customer) are serialised and the loser updates the winner's
row instead of inserting a duplicate. Metrics are append-only.
"""
from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sentinel_risk.core.exceptions import ProfileTypeMismatchError
from sentinel_risk.schemas.risk_request import ProfileType
from sentinel_risk.schemas.risk_response import RiskCategory, RiskMetric, RiskProfile

ProfileKey = tuple[UUID, str]


@dataclass(frozen=True)
class ProfileFields:
    """Everything a (re)calculation overwrites."""
    profile_type: ProfileType
    risk_score: Decimal
    risk_category: RiskCategory
    pd_score: Optional[Decimal] = None
    lgd_score: Optional[Decimal] = None
    ead_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class MetricFields:
    organization_id: UUID
    metric_type: str
    metric_value: Decimal
    time: datetime
    currency: str = "USD"
    confidence_level: Optional[Decimal] = None
    time_horizon: Optional[int] = None


def ensure_same_profile_type(existing: RiskProfile, fields: ProfileFields) -> None:
    if existing.profile_type != fields.profile_type:
        raise ProfileTypeMismatchError(
            existing.customer_id, existing.profile_type.value, fields.profile_type.value
        )


class RiskProfileStore(ABC):

    @abstractmethod
    async def lookup(self, organization_id: UUID, customer_id: str) -> Optional[RiskProfile]:
        ...

    @abstractmethod
    async def write_or_replace(
        self,
        organization_id: UUID,
        customer_id: str,
        fields: ProfileFields,
        now: datetime,
    ) -> tuple[RiskProfile, bool]:
        """Returns the stored profile and whether it was created by this call."""
        ...

    @abstractmethod
    async def list_profiles(self, organization_id: UUID) -> list[RiskProfile]:
        ...

    @abstractmethod
    async def list_profiles_above(self, organization_id: UUID, threshold: Decimal) -> list[RiskProfile]:
        """risk_score >= threshold, highest first."""
        ...

    @abstractmethod
    async def count_by_category(self, organization_id: UUID) -> dict[RiskCategory, int]:
        ...

    @abstractmethod
    async def append_metric(self, fields: MetricFields, now: datetime) -> RiskMetric:
        ...

    @abstractmethod
    async def latest_metric(self, organization_id: UUID, metric_type: str) -> Optional[RiskMetric]:
        ...

    @abstractmethod
    async def metrics_between(
        self,
        organization_id: UUID,
        metric_type: str,
        start: datetime,
        end: datetime,
    ) -> list[RiskMetric]:
        """Inclusive window, oldest first."""
        ...


class InMemoryRiskStore(RiskProfileStore):
    """Process-local store; one asyncio.Lock per natural key."""

    def __init__(self):
        self._profiles: dict[ProfileKey, RiskProfile] = {}
        self._metrics: list[RiskMetric] = []
        self._locks: dict[ProfileKey, asyncio.Lock] = {}

    def _lock_for(self, key: ProfileKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def lookup(self, organization_id: UUID, customer_id: str) -> Optional[RiskProfile]:
        return self._profiles.get((organization_id, customer_id))

    async def write_or_replace(
        self,
        organization_id: UUID,
        customer_id: str,
        fields: ProfileFields,
        now: datetime,
    ) -> tuple[RiskProfile, bool]:
        key = (organization_id, customer_id)
        async with self._lock_for(key):
            existing = self._profiles.get(key)
            if existing is None:
                profile = RiskProfile(
                    id=uuid.uuid4(),
                    organization_id=organization_id,
                    customer_id=customer_id,
                    profile_type=fields.profile_type,
                    risk_score=fields.risk_score,
                    risk_category=fields.risk_category,
                    pd_score=fields.pd_score,
                    lgd_score=fields.lgd_score,
                    ead_amount=fields.ead_amount,
                    created_at=now,
                    updated_at=now,
                )
                self._profiles[key] = profile
                return profile, True

            ensure_same_profile_type(existing, fields)
            profile = existing.model_copy(update={
                "risk_score": fields.risk_score,
                "risk_category": fields.risk_category,
                "pd_score": fields.pd_score,
                "lgd_score": fields.lgd_score,
                "ead_amount": fields.ead_amount,
                "updated_at": now,
            })
            self._profiles[key] = profile
            return profile, False

    async def list_profiles(self, organization_id: UUID) -> list[RiskProfile]:
        profiles = [p for (org, _), p in self._profiles.items() if org == organization_id]
        return sorted(profiles, key=lambda p: p.created_at)

    async def list_profiles_above(self, organization_id: UUID, threshold: Decimal) -> list[RiskProfile]:
        profiles = [
            p for (org, _), p in self._profiles.items()
            if org == organization_id and p.risk_score >= threshold
        ]
        return sorted(profiles, key=lambda p: p.risk_score, reverse=True)

    async def count_by_category(self, organization_id: UUID) -> dict[RiskCategory, int]:
        counts = {category: 0 for category in RiskCategory}
        for (org, _), profile in self._profiles.items():
            if org == organization_id:
                counts[profile.risk_category] += 1
        return counts

    async def append_metric(self, fields: MetricFields, now: datetime) -> RiskMetric:
        metric = RiskMetric(
            id=uuid.uuid4(),
            organization_id=fields.organization_id,
            metric_type=fields.metric_type,
            metric_value=fields.metric_value,
            currency=fields.currency,
            confidence_level=fields.confidence_level,
            time_horizon=fields.time_horizon,
            time=fields.time,
            created_at=now,
        )
        self._metrics.append(metric)
        return metric

    def _metrics_for(self, organization_id: UUID, metric_type: str) -> list[RiskMetric]:
        return [
            m for m in self._metrics
            if m.organization_id == organization_id and m.metric_type == metric_type
        ]

    async def latest_metric(self, organization_id: UUID, metric_type: str) -> Optional[RiskMetric]:
        metrics = self._metrics_for(organization_id, metric_type)
        return max(metrics, key=lambda m: m.time, default=None)

    async def metrics_between(
        self,
        organization_id: UUID,
        metric_type: str,
        start: datetime,
        end: datetime,
    ) -> list[RiskMetric]:
        metrics = [m for m in self._metrics_for(organization_id, metric_type) if start <= m.time <= end]
        return sorted(metrics, key=lambda m: m.time)
