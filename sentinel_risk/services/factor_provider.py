"""
Risk factor sources.

The scoring path never talks to a data source directly; it asks a
RiskFactorProvider for a customer's RiskFactors. Two implementations:

  SyntheticFactorProvider  deterministic, seeded from the customer id
                           (local dev, tests, demos)
  HttpFactorProvider       customer-data service over HTTP
                           GET {base}/customers/{customer_id}/risk-factors

fetch_factors may be a plain or an async method; the risk service
accepts either.
"""
from __future__ import annotations

import hashlib
import random
from abc import ABC, abstractmethod
from typing import Awaitable, Optional, Union

import httpx
import structlog
from pydantic import ValidationError

from sentinel_risk.core.config import Settings
from sentinel_risk.core.exceptions import ExternalServiceUnavailableError, NotFoundError
from sentinel_risk.schemas.risk_request import RiskFactors

logger = structlog.get_logger()

INDUSTRIES = ("TECHNOLOGY", "HEALTHCARE", "MANUFACTURING", "RETAIL", "ENERGY", "MINING")


def stable_seed(identifier: str) -> int:
    """64-bit seed that is identical across processes (unlike hash())."""
    digest = hashlib.sha256(identifier.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


class RiskFactorProvider(ABC):
    name: str = "unknown"

    @abstractmethod
    def fetch_factors(self, customer_id: str) -> Union[RiskFactors, Awaitable[RiskFactors]]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class SyntheticFactorProvider(RiskFactorProvider):
    """
    Generates plausible factors from a PRNG seeded by the customer id,
    so the same customer always lands in the same scoring buckets.
    """
    name = "synthetic"

    def fetch_factors(self, customer_id: str) -> RiskFactors:
        rng = random.Random(stable_seed(customer_id))
        return RiskFactors(
            credit_score=rng.randint(300, 849),
            income=rng.uniform(20_000.0, 200_000.0),
            debt_to_income=rng.uniform(0.1, 0.8),
            age=rng.randint(18, 79),
            has_collateral=rng.random() < 0.5,
            credit_limit=rng.uniform(10_000.0, 500_000.0),
            utilization=rng.uniform(0.1, 0.9),
            revenue=rng.uniform(50_000.0, 50_000_000.0),
            profit_margin=rng.uniform(-0.1, 0.3),
            debt_to_equity=rng.uniform(0.1, 4.0),
            industry=rng.choice(INDUSTRIES),
        )


class HttpFactorProvider(RiskFactorProvider):
    name = "customer-data"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)

    async def fetch_factors(self, customer_id: str) -> RiskFactors:
        try:
            resp = await self._client.get(f"/customers/{customer_id}/risk-factors")
        except httpx.HTTPError as e:
            logger.warning("factor_fetch_failed", customer_id=customer_id, error=str(e))
            raise ExternalServiceUnavailableError(self.name, str(e), cause=e)

        if resp.status_code == 404:
            raise NotFoundError("Customer", "customerId", customer_id)
        if resp.is_error:
            logger.warning("factor_fetch_failed", customer_id=customer_id, status=resp.status_code)
            raise ExternalServiceUnavailableError(self.name, f"HTTP {resp.status_code}")

        try:
            return RiskFactors.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            logger.warning("factor_payload_invalid", customer_id=customer_id, error=str(e))
            raise ExternalServiceUnavailableError(self.name, "invalid risk factor payload", cause=e)

    async def aclose(self) -> None:
        await self._client.aclose()


def build_factor_provider(settings: Settings) -> RiskFactorProvider:
    if settings.factor_provider == "http":
        return HttpFactorProvider(settings.factor_service_url, settings.factor_service_timeout_seconds)
    return SyntheticFactorProvider()
