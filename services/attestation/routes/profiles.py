"""
Credit Profile Routes
=====================

Read-only profile, tier, history and collateral queries.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from credlink.models.profile import TIER_NAMES, CreditProfile, ScoreEvent
from credlink.scoring.gateway import user_profile_view
from credlink.scoring.policy import attestation_badge, collateral_for_amount
from services.attestation.dependencies import EngineDep


router = APIRouter()


# ============================================================================
# Response Models
# ============================================================================


class ProfileResponse(BaseModel):
    """Full credit profile."""

    subject: str
    score: int
    tier: int
    tier_name: str
    collateral_ratio_bps: int
    total_loans: int
    repaid_loans: int
    defaulted_loans: int
    attestation_counts: dict[str, int]
    badge: str | None
    bound_at: datetime
    last_updated: datetime

    @classmethod
    def from_profile(cls, profile: CreditProfile) -> "ProfileResponse":
        return cls(
            subject=profile.subject,
            score=profile.score,
            tier=profile.tier,
            tier_name=profile.tier_name,
            collateral_ratio_bps=profile.collateral_ratio_bps,
            total_loans=profile.total_loans,
            repaid_loans=profile.repaid_loans,
            defaulted_loans=profile.defaulted_loans,
            attestation_counts=profile.attestation_counts,
            badge=attestation_badge(profile.attestation_count),
            bound_at=profile.bound_at,
            last_updated=profile.last_updated,
        )


class TierResponse(BaseModel):
    subject: str
    tier: int
    tier_name: str
    collateral_ratio_bps: int


class CollateralResponse(BaseModel):
    """Collateral quote; amounts are decimal strings."""

    tier: int
    tier_name: str
    amount: str
    collateral: str


class HistoryResponse(BaseModel):
    subject: str
    events: list[ScoreEvent]
    chain_valid: bool


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/profiles/{subject}", response_model=dict[str, Any])
async def get_user_profile(subject: str, engine: EngineDep) -> dict[str, Any]:
    """
    Profile in the compact shape the dashboard consumes.

    Keys: score, tier, collateralRatio (basis points), totalLoans,
    repaidLoans, lastUpdated (unix seconds).
    """
    return user_profile_view(await engine.get_profile(subject))


@router.get("/profiles/{subject}/details", response_model=ProfileResponse)
async def get_profile_details(subject: str, engine: EngineDep) -> ProfileResponse:
    """Full profile including loan accounting and attestation badge."""
    return ProfileResponse.from_profile(await engine.get_profile(subject))


@router.get("/profiles/{subject}/tier", response_model=TierResponse)
async def get_user_tier(subject: str, engine: EngineDep) -> TierResponse:
    profile = await engine.get_profile(subject)
    return TierResponse(
        subject=profile.subject,
        tier=profile.tier,
        tier_name=profile.tier_name,
        collateral_ratio_bps=profile.collateral_ratio_bps,
    )


@router.get("/profiles/{subject}/history", response_model=HistoryResponse)
async def get_score_history(
    subject: str,
    engine: EngineDep,
    limit: int = Query(default=100, ge=1, le=1000),
) -> HistoryResponse:
    """Score events for a subject, newest first."""
    events = await engine.get_score_history(subject, limit)
    profile = await engine.get_profile(subject)
    return HistoryResponse(
        subject=profile.subject,
        events=events,
        chain_valid=await engine.store.verify_chain(profile.subject),
    )


@router.get("/profiles/{subject}/collateral", response_model=CollateralResponse)
async def get_collateral_required(
    subject: str,
    engine: EngineDep,
    amount: Decimal = Query(..., ge=0),
) -> CollateralResponse:
    """Collateral the subject must post for a principal at its current tier."""
    profile = await engine.get_profile(subject)
    collateral = await engine.get_collateral_required(subject, amount)
    return CollateralResponse(
        tier=profile.tier,
        tier_name=profile.tier_name,
        amount=str(amount),
        collateral=str(collateral),
    )


@router.get("/collateral", response_model=CollateralResponse)
async def get_collateral_for_amount(
    tier: int = Query(..., ge=0, le=max(TIER_NAMES)),
    amount: Decimal = Query(..., ge=0),
) -> CollateralResponse:
    """Collateral for a principal at a given tier."""
    return CollateralResponse(
        tier=tier,
        tier_name=TIER_NAMES[tier],
        amount=str(amount),
        collateral=str(collateral_for_amount(tier, amount)),
    )
