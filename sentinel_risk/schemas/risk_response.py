"""
Outbound models: profiles, metrics, summary, and the events
published to downstream consumers.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sentinel_risk.schemas.risk_request import ProfileType


class RiskCategory(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class MetricType(str, Enum):
    VAR = "VaR"
    CAPITAL_RATIO = "CAPITAL_RATIO"


class RiskEventType(str, Enum):
    RISK_PROFILE_CREATED = "RISK_PROFILE_CREATED"
    RISK_PROFILE_RECALCULATED = "RISK_PROFILE_RECALCULATED"
    RISK_METRIC_RECORDED = "RISK_METRIC_RECORDED"


class FactorContribution(BaseModel):
    """Individual factor contribution to the composite score."""
    factor_name: str
    raw_value: str
    bucket_label: str
    points: Decimal
    weight: Decimal
    weighted_points: Decimal


class RiskProfile(BaseModel):
    """
    One per (organization_id, customer_id).
    pd_score / lgd_score / ead_amount are only set for CORPORATE profiles.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    organization_id: UUID
    customer_id: str
    profile_type: ProfileType
    risk_score: Decimal = Field(description="0.00 - 100.00")
    risk_category: RiskCategory
    pd_score: Optional[Decimal] = Field(None, description="Probability of Default")
    lgd_score: Optional[Decimal] = Field(None, description="Loss Given Default")
    ead_amount: Optional[Decimal] = Field(None, description="Exposure at Default")
    created_at: datetime
    updated_at: datetime


class RiskMetric(BaseModel):
    """Append-only time-series fact (VaR, CAPITAL_RATIO, ...)."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    organization_id: UUID
    metric_type: str
    metric_value: Decimal
    currency: str = "USD"
    confidence_level: Optional[Decimal] = None
    time_horizon: Optional[int] = Field(None, description="Days")
    time: datetime
    created_at: datetime


class RiskDistribution(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class RiskSummary(BaseModel):
    organization_id: UUID
    total_profiles: int
    risk_distribution: RiskDistribution
    latest_var: Optional[RiskMetric] = None
    latest_capital_ratio: Optional[RiskMetric] = None
    last_updated: datetime


class RiskEvent(BaseModel):
    """Payload published on the risk events topic."""
    event_id: UUID
    event_type: RiskEventType
    organization_id: UUID
    occurred_at: datetime
    profile: Optional[RiskProfile] = None
    metric: Optional[RiskMetric] = None
    factor_contributions: list[FactorContribution] = []

    @property
    def partition_key(self) -> str:
        if self.profile is not None:
            return f"{self.organization_id}:{self.profile.customer_id}"
        return str(self.organization_id)
