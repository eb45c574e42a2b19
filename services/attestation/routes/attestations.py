"""
Attestation Routes
==================

Submit a proof to be verified and applied to the subject's score.
Requires a capability with the verifier role.
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from credlink.models.profile import ScoreEvent
from credlink.scoring import ScoreUpdate
from credlink.zk import PredicateKind
from services.attestation.dependencies import GatewayDep
from services.attestation.routes.profiles import ProfileResponse


router = APIRouter()


class AttestationRequest(BaseModel):
    """Positional proof plus the predicate it claims."""

    predicate_kind: PredicateKind
    subject: str = Field(..., min_length=1)
    a: list[Any]
    b: list[list[Any]]
    c: list[Any]
    public_signals: list[Any] = Field(..., description="[threshold, nullifier, valid, degenerate]")


class ScoreUpdateResponse(BaseModel):
    """Result of an applied score mutation."""

    success: bool = True
    subject: str
    previous_score: int
    new_score: int
    previous_tier: int
    new_tier: int
    applied_delta: int
    degenerate: bool
    profile: ProfileResponse
    event: ScoreEvent

    @classmethod
    def from_update(cls, update: ScoreUpdate) -> "ScoreUpdateResponse":
        return cls(
            subject=update.subject,
            previous_score=update.previous_score,
            new_score=update.new_score,
            previous_tier=update.previous_tier,
            new_tier=update.new_tier,
            applied_delta=update.applied_delta,
            degenerate=update.degenerate,
            profile=ProfileResponse.from_profile(update.profile),
            event=update.event,
        )


@router.post("", response_model=ScoreUpdateResponse)
async def submit_attestation(
    request: AttestationRequest,
    gateway: GatewayDep,
) -> ScoreUpdateResponse:
    """
    Verify a proof and update the subject's score.

    Errors:
    - 400 malformed proof or signals
    - 404 subject not bound
    - 409 proof already consumed
    - 422 proof invalid, verdict false, or threshold weaker than policy
    """
    update = await gateway.verify_and_update_score(
        request.a,
        request.b,
        request.c,
        request.public_signals,
        request.subject,
        predicate_kind=request.predicate_kind,
    )
    return ScoreUpdateResponse.from_update(update)
