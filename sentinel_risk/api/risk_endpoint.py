"""
/v1/risk — profile and portfolio-metric endpoints.

POST /profiles               → calculate (create or recalculate) a profile
GET  /profiles               → all profiles of an organization
GET  /profiles/high-risk     → score ≥ threshold, highest first
GET  /profiles/{customer_id} → one profile (404 if absent)
POST /metrics/var            → calculate + record VaR
POST /metrics                → record an externally computed metric
GET  /metrics/capital-ratio  → latest CAPITAL_RATIO
GET  /metrics/{metric_type}  → time series over the last N days
GET  /summary                → category distribution + latest metrics
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query

from sentinel_risk.api.dependencies import get_risk_service
from sentinel_risk.core.auth import authorize_organization, verify_token
from sentinel_risk.core.config import Settings, get_settings
from sentinel_risk.schemas.risk_request import (
    CalculateProfileRequest,
    CalculateVaRRequest,
    RecordMetricRequest,
)
from sentinel_risk.schemas.risk_response import RiskMetric, RiskProfile, RiskSummary
from sentinel_risk.services.risk_service import RiskService

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/risk", tags=["risk"])


@router.post(
    "/profiles",
    response_model=RiskProfile,
    response_model_exclude_none=True,
    summary="Calculate or recalculate a customer risk profile",
)
async def calculate_risk_profile(
    request: CalculateProfileRequest,
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> RiskProfile:
    authorize_organization(token_payload, request.organization_id, settings)
    logger.info(
        "risk_profile_requested",
        organization_id=str(request.organization_id),
        customer_id=request.customer_id,
        profile_type=request.profile_type.value,
        caller=token_payload.get("sub", "unknown"),
    )
    return await service.calculate_risk_profile(
        request.organization_id, request.customer_id, request.profile_type
    )


@router.get("/profiles", response_model=list[RiskProfile], response_model_exclude_none=True)
async def list_risk_profiles(
    organization_id: UUID,
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> list[RiskProfile]:
    authorize_organization(token_payload, organization_id, settings)
    return await service.list_risk_profiles(organization_id)


@router.get("/profiles/high-risk", response_model=list[RiskProfile], response_model_exclude_none=True)
async def list_high_risk_profiles(
    organization_id: UUID,
    threshold: Decimal = Query(Decimal("70.0"), ge=0, le=100),
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> list[RiskProfile]:
    authorize_organization(token_payload, organization_id, settings)
    return await service.list_high_risk_profiles(organization_id, threshold)


@router.get("/profiles/{customer_id}", response_model=RiskProfile, response_model_exclude_none=True)
async def get_risk_profile(
    customer_id: str,
    organization_id: UUID,
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> RiskProfile:
    authorize_organization(token_payload, organization_id, settings)
    return await service.get_risk_profile(organization_id, customer_id)


@router.post("/metrics/var", response_model=RiskMetric, response_model_exclude_none=True)
async def calculate_var(
    request: CalculateVaRRequest,
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> RiskMetric:
    authorize_organization(token_payload, request.organization_id, settings)
    return await service.calculate_var(request.organization_id, request.confidence_level, request.time_horizon)


@router.post("/metrics", response_model=RiskMetric, response_model_exclude_none=True)
async def record_metric(
    request: RecordMetricRequest,
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> RiskMetric:
    authorize_organization(token_payload, request.organization_id, settings)
    return await service.record_metric(
        request.organization_id,
        request.metric_type,
        request.metric_value,
        currency=request.currency,
        confidence_level=request.confidence_level,
        time_horizon=request.time_horizon,
        observed_at=request.time,
    )


@router.get("/metrics/capital-ratio", response_model=Optional[RiskMetric], response_model_exclude_none=True)
async def get_capital_ratio(
    organization_id: UUID,
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> Optional[RiskMetric]:
    authorize_organization(token_payload, organization_id, settings)
    return await service.get_capital_ratio(organization_id)


@router.get("/metrics/{metric_type}", response_model=list[RiskMetric], response_model_exclude_none=True)
async def get_risk_metrics(
    metric_type: str,
    organization_id: UUID,
    days: int = Query(30, ge=1, le=3650),
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> list[RiskMetric]:
    authorize_organization(token_payload, organization_id, settings)
    return await service.get_risk_metrics(organization_id, metric_type, days)


@router.get("/summary", response_model=RiskSummary, response_model_exclude_none=True)
async def get_risk_summary(
    organization_id: UUID,
    token_payload: dict = Depends(verify_token),
    settings: Settings = Depends(get_settings),
    service: RiskService = Depends(get_risk_service),
) -> RiskSummary:
    authorize_organization(token_payload, organization_id, settings)
    return await service.get_risk_summary(organization_id)


@router.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "service": "sentinel-risk-engine"}
