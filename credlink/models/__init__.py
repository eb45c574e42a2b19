"""
CredLink Models
===============

Pydantic models shared by the ledger, the scoring engine and the service.
"""

from credlink.models.common import ErrorResponse, HealthResponse
from credlink.models.profile import (
    MAX_SCORE,
    TIER_NAMES,
    TIER_TABLE_BPS,
    CreditProfile,
    EventReason,
    ScoreEvent,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "MAX_SCORE",
    "TIER_NAMES",
    "TIER_TABLE_BPS",
    "CreditProfile",
    "EventReason",
    "ScoreEvent",
]
