"""
Wiring: builds the RiskService and its collaborators from Settings.
Overridden in tests via app.dependency_overrides[get_risk_service].
"""
from __future__ import annotations

from functools import lru_cache

from sentinel_risk.core.config import get_settings
from sentinel_risk.scoring.adjusters import build_score_adjuster
from sentinel_risk.scoring.engine import ScoringEngine
from sentinel_risk.services.event_publisher import build_event_publisher
from sentinel_risk.services.factor_provider import build_factor_provider
from sentinel_risk.services.portfolio_valuation import build_portfolio_provider
from sentinel_risk.services.profile_store import InMemoryRiskStore, RiskProfileStore
from sentinel_risk.services.risk_service import RiskService


def _build_store() -> RiskProfileStore:
    settings = get_settings()
    if settings.store_backend == "memory":
        return InMemoryRiskStore()

    from sentinel_risk.models.database import get_session_factory
    from sentinel_risk.services.sql_store import SqlAlchemyRiskStore
    return SqlAlchemyRiskStore(get_session_factory(), settings.store_max_write_attempts)


@lru_cache
def get_risk_service() -> RiskService:
    settings = get_settings()
    return RiskService(
        factor_provider=build_factor_provider(settings),
        store=_build_store(),
        publisher=build_event_publisher(settings),
        valuation_provider=build_portfolio_provider(settings),
        scoring_engine=ScoringEngine(build_score_adjuster(settings)),
        default_currency=settings.default_currency,
    )
