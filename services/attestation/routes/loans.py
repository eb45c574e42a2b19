"""
Lending Pool Routes
===================

Loan lifecycle hooks called by the lending pool. Requires a capability with
the lending_pool role.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from credlink.auth.dependencies import require_lending_pool
from services.attestation.dependencies import EngineDep
from services.attestation.routes.attestations import ScoreUpdateResponse


router = APIRouter()

LendingPoolToken = Annotated[str, Depends(require_lending_pool)]


@router.post("/{subject}/open", response_model=ScoreUpdateResponse)
async def record_loan(
    subject: str,
    engine: EngineDep,
    token: LendingPoolToken,
) -> ScoreUpdateResponse:
    """Count a newly opened loan."""
    return ScoreUpdateResponse.from_update(await engine.record_loan(token, subject))


@router.post("/{subject}/repay", response_model=ScoreUpdateResponse)
async def record_repayment(
    subject: str,
    engine: EngineDep,
    token: LendingPoolToken,
) -> ScoreUpdateResponse:
    """Settle an outstanding loan as repaid and apply the repayment bonus."""
    return ScoreUpdateResponse.from_update(await engine.record_repayment(token, subject))


@router.post("/{subject}/liquidate", response_model=ScoreUpdateResponse)
async def record_liquidation(
    subject: str,
    engine: EngineDep,
    token: LendingPoolToken,
) -> ScoreUpdateResponse:
    """Settle an outstanding loan as defaulted and apply the liquidation penalty."""
    return ScoreUpdateResponse.from_update(await engine.record_liquidation(token, subject))
