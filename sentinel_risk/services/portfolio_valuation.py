"""
Portfolio valuation sources for the VaR path.

The VaR calculator only consumes already-resolved numbers; this module
resolves (portfolio value, volatility) for an organization.
"""
from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Optional, Union
from uuid import UUID

import httpx
import structlog

from sentinel_risk.core.config import Settings
from sentinel_risk.core.exceptions import ExternalServiceUnavailableError
from sentinel_risk.services.factor_provider import stable_seed

logger = structlog.get_logger()


@dataclass(frozen=True)
class PortfolioValuation:
    portfolio_value: Decimal
    volatility: Decimal


class PortfolioValuationProvider(ABC):
    name: str = "unknown"

    @abstractmethod
    def fetch_valuation(
        self, organization_id: UUID
    ) -> Union[PortfolioValuation, Awaitable[PortfolioValuation]]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class SyntheticPortfolioValuation(PortfolioValuationProvider):
    """Value in [1M, 1B), annualised volatility in [15%, 35%), seeded by organization id."""
    name = "synthetic"

    def fetch_valuation(self, organization_id: UUID) -> PortfolioValuation:
        rng = random.Random(stable_seed(str(organization_id)))
        value = rng.uniform(1_000_000.0, 1_000_000_000.0)
        volatility = rng.uniform(0.15, 0.35)
        return PortfolioValuation(
            portfolio_value=Decimal(str(round(value, 2))),
            volatility=Decimal(str(round(volatility, 6))),
        )


class HttpPortfolioValuation(PortfolioValuationProvider):
    """GET {base}/organizations/{id}/portfolio → {"portfolioValue": ..., "volatility": ...}"""
    name = "portfolio-valuation"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)

    async def fetch_valuation(self, organization_id: UUID) -> PortfolioValuation:
        try:
            resp = await self._client.get(f"/organizations/{organization_id}/portfolio")
            resp.raise_for_status()
            body = resp.json()
            return PortfolioValuation(
                portfolio_value=Decimal(str(body["portfolioValue"])),
                volatility=Decimal(str(body["volatility"])),
            )
        except httpx.HTTPError as e:
            logger.warning("portfolio_fetch_failed", organization_id=str(organization_id), error=str(e))
            raise ExternalServiceUnavailableError(self.name, str(e), cause=e)
        except (KeyError, ArithmeticError, ValueError) as e:
            logger.warning("portfolio_payload_invalid", organization_id=str(organization_id), error=str(e))
            raise ExternalServiceUnavailableError(self.name, "invalid portfolio payload", cause=e)

    async def aclose(self) -> None:
        await self._client.aclose()


def build_portfolio_provider(settings: Settings) -> PortfolioValuationProvider:
    if settings.portfolio_provider == "http":
        return HttpPortfolioValuation(settings.portfolio_service_url, settings.portfolio_service_timeout_seconds)
    return SyntheticPortfolioValuation()
