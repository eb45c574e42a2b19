"""
Identity Binding Routes
=======================

Admin-gated identity binding and verification status.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from credlink.auth.dependencies import require_admin
from credlink.zk.models import normalize_subject
from services.attestation.dependencies import EngineDep
from services.attestation.routes.profiles import ProfileResponse


router = APIRouter()


class BindIdentityRequest(BaseModel):
    """Request to bind a subject to an identity hash."""

    subject: str = Field(..., min_length=1, description="Wallet address or subject id")
    identity_hash: str = Field(..., min_length=1, description="Hash of the off-chain identity")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "subject": "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
                    "identity_hash": "0x7c2f9a...",
                }
            ]
        }
    }


class IdentityStatusResponse(BaseModel):
    subject: str
    verified: bool


@router.post("/bind", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def bind_identity(
    request: BindIdentityRequest,
    engine: EngineDep,
    token: Annotated[str, Depends(require_admin)],
) -> ProfileResponse:
    """
    Bind a subject to an identity hash.

    Binding is one-time per subject and per identity hash. The new profile
    starts at the initial score.
    """
    profile = await engine.bind_identity(token, request.subject, request.identity_hash)
    return ProfileResponse.from_profile(profile)


@router.get("/{subject}/verified", response_model=IdentityStatusResponse)
async def is_identity_verified(subject: str, engine: EngineDep) -> IdentityStatusResponse:
    """Check whether a subject has a bound identity."""
    return IdentityStatusResponse(
        subject=normalize_subject(subject),
        verified=await engine.is_verified(subject),
    )
