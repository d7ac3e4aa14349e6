"""
Inbound payloads.

RiskFactors is the wire shape of the customer-data service (camelCase keys);
the request models are what the HTTP surface accepts.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProfileType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    CORPORATE = "CORPORATE"


class RiskFactors(BaseModel):
    """
    Raw per-customer attributes supplied by the risk factor source.

    No range constraints: every scoring bucket is total, and
    out-of-domain values (negative income, utilization > 1) are normalised
    downstream.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    credit_score: int
    income: float
    debt_to_income: float
    age: int
    has_collateral: bool
    credit_limit: float
    utilization: float
    revenue: float
    profit_margin: float
    debt_to_equity: float
    industry: str


class CalculateProfileRequest(BaseModel):
    """POST /v1/risk/profiles"""
    organization_id: UUID
    customer_id: str = Field(min_length=1, max_length=100)
    profile_type: ProfileType


class CalculateVaRRequest(BaseModel):
    """POST /v1/risk/metrics/var"""
    organization_id: UUID
    confidence_level: Decimal = Field(Decimal("0.95"), gt=0, lt=1)
    time_horizon: int = Field(1, ge=1, description="Days")


class RecordMetricRequest(BaseModel):
    """POST /v1/risk/metrics — externally computed metric, e.g. CAPITAL_RATIO from treasury."""
    organization_id: UUID
    metric_type: str = Field(min_length=1, max_length=50)
    metric_value: Decimal
    currency: str = Field("USD", min_length=3, max_length=3)
    confidence_level: Optional[Decimal] = Field(None, gt=0, lt=1)
    time_horizon: Optional[int] = Field(None, ge=1)
    time: Optional[datetime] = Field(None, description="Observation time; defaults to now")
