"""
SQLAlchemy implementation of the risk store.

Per-key serialisation for write_or_replace:
  - the existing row is read with SELECT ... FOR UPDATE inside the
    write transaction, so concurrent recalculations queue on the row lock
  - two concurrent *first* inserts collide on uq_risk_profiles_org_customer;
    the loser rolls back and retries, and finds the winner's row
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sentinel_risk.models.risk_profile import RiskMetricRecord, RiskProfileRecord
from sentinel_risk.schemas.risk_request import ProfileType
from sentinel_risk.schemas.risk_response import RiskCategory, RiskMetric, RiskProfile
from sentinel_risk.services.profile_store import (
    MetricFields,
    ProfileFields,
    RiskProfileStore,
    ensure_same_profile_type,
)

logger = structlog.get_logger()


def _as_utc(value: datetime) -> datetime:
    # some backends (SQLite) hand back naive datetimes
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _to_profile(record: RiskProfileRecord) -> RiskProfile:
    return RiskProfile(
        id=record.id,
        organization_id=record.organization_id,
        customer_id=record.customer_id,
        profile_type=ProfileType(record.profile_type),
        risk_score=record.risk_score,
        risk_category=RiskCategory(record.risk_category),
        pd_score=record.pd_score,
        lgd_score=record.lgd_score,
        ead_amount=record.ead_amount,
        created_at=_as_utc(record.created_at),
        updated_at=_as_utc(record.updated_at),
    )


def _to_metric(record: RiskMetricRecord) -> RiskMetric:
    return RiskMetric(
        id=record.id,
        organization_id=record.organization_id,
        metric_type=record.metric_type,
        metric_value=record.metric_value,
        currency=record.currency,
        confidence_level=record.confidence_level,
        time_horizon=record.time_horizon,
        time=_as_utc(record.time),
        created_at=_as_utc(record.created_at),
    )


class SqlAlchemyRiskStore(RiskProfileStore):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], max_write_attempts: int = 3):
        self._session_factory = session_factory
        self.max_write_attempts = max(1, max_write_attempts)

    async def lookup(self, organization_id: UUID, customer_id: str) -> Optional[RiskProfile]:
        async with self._session_factory() as session:
            stmt = select(RiskProfileRecord).where(
                RiskProfileRecord.organization_id == organization_id,
                RiskProfileRecord.customer_id == customer_id,
            )
            record = (await session.execute(stmt)).scalar_one_or_none()
            return _to_profile(record) if record else None

    async def write_or_replace(
        self,
        organization_id: UUID,
        customer_id: str,
        fields: ProfileFields,
        now: datetime,
    ) -> tuple[RiskProfile, bool]:
        attempt = 1
        while True:
            try:
                return await self._write_once(organization_id, customer_id, fields, now)
            except IntegrityError:
                logger.info(
                    "risk_profile_write_conflict",
                    organization_id=str(organization_id),
                    customer_id=customer_id,
                    attempt=attempt,
                )
                if attempt >= self.max_write_attempts:
                    raise
                attempt += 1

    async def _write_once(
        self,
        organization_id: UUID,
        customer_id: str,
        fields: ProfileFields,
        now: datetime,
    ) -> tuple[RiskProfile, bool]:
        async with self._session_factory() as session:
            async with session.begin():
                stmt = (
                    select(RiskProfileRecord)
                    .where(
                        RiskProfileRecord.organization_id == organization_id,
                        RiskProfileRecord.customer_id == customer_id,
                    )
                    .with_for_update()
                )
                record = (await session.execute(stmt)).scalar_one_or_none()
                created = record is None

                if created:
                    record = RiskProfileRecord(
                        id=uuid.uuid4(),
                        organization_id=organization_id,
                        customer_id=customer_id,
                        profile_type=fields.profile_type.value,
                        created_at=now,
                    )
                    session.add(record)
                else:
                    ensure_same_profile_type(_to_profile(record), fields)

                record.risk_score = fields.risk_score
                record.risk_category = fields.risk_category.value
                record.pd_score = fields.pd_score
                record.lgd_score = fields.lgd_score
                record.ead_amount = fields.ead_amount
                record.updated_at = now

                await session.flush()
                profile = _to_profile(record)
            return profile, created

    async def list_profiles(self, organization_id: UUID) -> list[RiskProfile]:
        async with self._session_factory() as session:
            stmt = (
                select(RiskProfileRecord)
                .where(RiskProfileRecord.organization_id == organization_id)
                .order_by(RiskProfileRecord.created_at)
            )
            return [_to_profile(r) for r in (await session.execute(stmt)).scalars()]

    async def list_profiles_above(self, organization_id: UUID, threshold: Decimal) -> list[RiskProfile]:
        async with self._session_factory() as session:
            stmt = (
                select(RiskProfileRecord)
                .where(
                    RiskProfileRecord.organization_id == organization_id,
                    RiskProfileRecord.risk_score >= threshold,
                )
                .order_by(RiskProfileRecord.risk_score.desc())
            )
            return [_to_profile(r) for r in (await session.execute(stmt)).scalars()]

    async def count_by_category(self, organization_id: UUID) -> dict[RiskCategory, int]:
        counts = {category: 0 for category in RiskCategory}
        async with self._session_factory() as session:
            stmt = (
                select(RiskProfileRecord.risk_category, func.count())
                .where(RiskProfileRecord.organization_id == organization_id)
                .group_by(RiskProfileRecord.risk_category)
            )
            for category, count in (await session.execute(stmt)).all():
                counts[RiskCategory(category)] = count
        return counts

    async def append_metric(self, fields: MetricFields, now: datetime) -> RiskMetric:
        record = RiskMetricRecord(
            id=uuid.uuid4(),
            time=fields.time,
            organization_id=fields.organization_id,
            metric_type=fields.metric_type,
            metric_value=fields.metric_value,
            currency=fields.currency,
            confidence_level=fields.confidence_level,
            time_horizon=fields.time_horizon,
            created_at=now,
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(record)
                await session.flush()
                metric = _to_metric(record)
        return metric

    async def latest_metric(self, organization_id: UUID, metric_type: str) -> Optional[RiskMetric]:
        async with self._session_factory() as session:
            stmt = (
                select(RiskMetricRecord)
                .where(
                    RiskMetricRecord.organization_id == organization_id,
                    RiskMetricRecord.metric_type == metric_type,
                )
                .order_by(RiskMetricRecord.time.desc())
                .limit(1)
            )
            record = (await session.execute(stmt)).scalar_one_or_none()
            return _to_metric(record) if record else None

    async def metrics_between(
        self,
        organization_id: UUID,
        metric_type: str,
        start: datetime,
        end: datetime,
    ) -> list[RiskMetric]:
        async with self._session_factory() as session:
            stmt = (
                select(RiskMetricRecord)
                .where(
                    RiskMetricRecord.organization_id == organization_id,
                    RiskMetricRecord.metric_type == metric_type,
                    RiskMetricRecord.time.between(start, end),
                )
                .order_by(RiskMetricRecord.time)
            )
            return [_to_metric(r) for r in (await session.execute(stmt)).scalars()]
