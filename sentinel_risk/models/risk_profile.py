"""
Persistent tables.
Schema: sentinel_risk.risk_profiles, sentinel_risk.risk_metrics
"""
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase

SCHEMA = "sentinel_risk"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class RiskProfileRecord(Base):
    __tablename__ = "risk_profiles"
    __table_args__ = (
        UniqueConstraint("organization_id", "customer_id", name="uq_risk_profiles_org_customer"),
        CheckConstraint("risk_score >= 0 AND risk_score <= 100", name="ck_risk_profiles_score_range"),
        Index("ix_risk_profiles_organization_id", "organization_id"),
        Index("ix_risk_profiles_org_score", "organization_id", "risk_score"),
        {"schema": SCHEMA},
    )

    id = Column(Uuid, primary_key=True)
    organization_id = Column(Uuid, nullable=False)
    customer_id = Column(String(100), nullable=False)
    profile_type = Column(String(20), nullable=False)

    # ── Scoring outputs ──
    risk_score = Column(Numeric(5, 2), nullable=False)
    risk_category = Column(String(20), nullable=False)

    # ── Basel III (CORPORATE only) ──
    pd_score = Column(Numeric(8, 6), nullable=True)
    lgd_score = Column(Numeric(8, 6), nullable=True)
    ead_amount = Column(Numeric(18, 2), nullable=True)

    # ── Metadata ──
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<RiskProfileRecord {self.customer_id} category={self.risk_category} score={self.risk_score}>"


class RiskMetricRecord(Base):
    __tablename__ = "risk_metrics"
    __table_args__ = (
        Index("ix_risk_metrics_org_type_time", "organization_id", "metric_type", "time"),
        {"schema": SCHEMA},
    )

    id = Column(Uuid, primary_key=True)
    time = Column(DateTime(timezone=True), nullable=False)
    organization_id = Column(Uuid, nullable=False)
    metric_type = Column(String(50), nullable=False)
    metric_value = Column(Numeric(18, 6), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    confidence_level = Column(Numeric(6, 4), nullable=True)
    time_horizon = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<RiskMetricRecord {self.metric_type}={self.metric_value} at {self.time}>"
