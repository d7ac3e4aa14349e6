"""
Risk engine exception hierarchy.

Raised by the services layer; the API layer translates them into
HTTP responses (404 / 409 / 503).
"""
from __future__ import annotations

from typing import Optional


class RiskEngineError(Exception):
    """Base exception for all risk engine errors."""


class NotFoundError(RiskEngineError):
    """Raised when a requested resource does not exist."""

    def __init__(self, entity: str, field: str, value: str) -> None:
        super().__init__(f"{entity} with {field} '{value}' not found")
        self.entity = entity
        self.field = field
        self.value = value


class ExternalServiceUnavailableError(RiskEngineError):
    """An upstream collaborator (factor source, valuation source) could not be reached."""

    def __init__(self, service: str, detail: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"{service} unavailable: {detail}")
        self.service = service
        self.detail = detail
        self.__cause__ = cause


class ProfileTypeMismatchError(RiskEngineError):
    """Profile type is immutable once a profile exists."""

    def __init__(self, customer_id: str, existing: str, requested: str) -> None:
        super().__init__(
            f"RiskProfile for customer '{customer_id}' is {existing}, cannot recalculate as {requested}"
        )
        self.customer_id = customer_id
        self.existing = existing
        self.requested = requested
