"""
Credit Proof Routes
===================

Proof generation for the three credit predicates and stateless
verification. Neither endpoint touches the profile ledger.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from credlink.logging import get_logger
from credlink.zk import PredicateKind, ProofEnvelope
from credlink.zk.verifier import build_envelope, generate_solidity_calldata
from services.attestation.dependencies import ProverDep, VerifierDep


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class WalletAgeProofRequest(BaseModel):
    """Request to prove wallet_age_days >= threshold."""

    subject: str = Field(..., min_length=1)
    wallet_age_days: int = Field(..., ge=0, description="Actual wallet age (private)")
    threshold: int = Field(..., ge=0, description="Minimum age in days")

    model_config = {
        "json_schema_extra": {
            "examples": [{"subject": "0xabc", "wallet_age_days": 400, "threshold": 365}]
        }
    }


class RepaymentProofRequest(BaseModel):
    """Request to prove repaid_loans * 100 >= total_loans * min_repayment_rate."""

    subject: str = Field(..., min_length=1)
    total_loans: int = Field(..., ge=0)
    repaid_loans: int = Field(..., ge=0)
    min_repayment_rate: int = Field(..., ge=0, le=100)


class DefaultRatioProofRequest(BaseModel):
    """Request to prove defaulted_loans * 100 <= total_loans * max_default_rate."""

    subject: str = Field(..., min_length=1)
    total_loans: int = Field(..., ge=0)
    defaulted_loans: int = Field(..., ge=0)
    max_default_rate: int = Field(..., ge=0, le=100)


class ProofResponse(BaseModel):
    """Generated proof in wire form."""

    success: bool = True
    predicate_kind: PredicateKind
    subject: str
    a: list[int]
    b: list[list[int]]
    c: list[int]
    public_signals: list[int]
    valid: bool
    degenerate: bool
    proving_time_ms: int

    @classmethod
    def from_envelope(cls, envelope: ProofEnvelope) -> "ProofResponse":
        wire = envelope.to_wire()
        return cls(
            predicate_kind=envelope.predicate_kind,
            subject=wire["subject"],
            a=wire["a"],
            b=wire["b"],
            c=wire["c"],
            public_signals=wire["public_signals"],
            valid=envelope.valid,
            degenerate=envelope.public_signals.degenerate,
            proving_time_ms=envelope.metadata.proving_time_ms,
        )


class VerifyProofRequest(BaseModel):
    """Positional proof as a verifier contract takes it."""

    predicate_kind: PredicateKind
    subject: str = Field(..., min_length=1)
    a: list[Any]
    b: list[list[Any]]
    c: list[Any]
    public_signals: list[Any] = Field(..., description="[threshold, nullifier, valid, degenerate]")


class VerifyProofResponse(BaseModel):
    predicate_kind: PredicateKind
    subject: str
    proof_verified: bool
    valid: bool
    threshold: int
    nullifier: str
    verification_time_ms: int
    error: str | None = None
    calldata: dict[str, Any] | None = None


# ============================================================================
# Proof Generation Endpoints
# ============================================================================


async def _generate(coro: Any, kind: PredicateKind, subject: str) -> ProofResponse:
    logger.info("generating_credit_proof", predicate=kind.value, subject=subject)
    try:
        envelope = await coro
    except FileNotFoundError as e:
        logger.error("circuit_files_not_found", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ZK circuit files not available. Run circuit setup first.",
        ) from e
    return ProofResponse.from_envelope(envelope)


@router.post("/wallet-age", response_model=ProofResponse)
async def generate_wallet_age_proof(
    request: WalletAgeProofRequest,
    prover: ProverDep,
) -> ProofResponse:
    """
    Prove account longevity without revealing the exact age.

    The bound is inclusive: an age equal to the threshold is valid.
    """
    return await _generate(
        prover.prove_wallet_age(request.wallet_age_days, request.threshold, request.subject),
        PredicateKind.WALLET_AGE,
        request.subject,
    )


@router.post("/repayment", response_model=ProofResponse)
async def generate_repayment_proof(
    request: RepaymentProofRequest,
    prover: ProverDep,
) -> ProofResponse:
    """Prove a minimum repayment rate without revealing loan counts."""
    return await _generate(
        prover.prove_repayment(
            request.total_loans,
            request.repaid_loans,
            request.min_repayment_rate,
            request.subject,
        ),
        PredicateKind.REPAYMENT,
        request.subject,
    )


@router.post("/default-ratio", response_model=ProofResponse)
async def generate_default_ratio_proof(
    request: DefaultRatioProofRequest,
    prover: ProverDep,
) -> ProofResponse:
    """Prove a maximum default rate without revealing loan counts."""
    return await _generate(
        prover.prove_default_ratio(
            request.total_loans,
            request.defaulted_loans,
            request.max_default_rate,
            request.subject,
        ),
        PredicateKind.DEFAULT_RATIO,
        request.subject,
    )


# ============================================================================
# Verification Endpoint
# ============================================================================


@router.post("/verify", response_model=VerifyProofResponse)
async def verify_proof(
    request: VerifyProofRequest,
    verifier: VerifierDep,
) -> VerifyProofResponse:
    """
    Verify a proof without applying it to any profile.

    Malformed input is rejected with 400.
    """
    envelope = build_envelope(
        request.predicate_kind,
        request.a,
        request.b,
        request.c,
        request.public_signals,
        request.subject,
    )
    result = await verifier.verify(envelope, request.predicate_kind)

    return VerifyProofResponse(
        predicate_kind=result.predicate_kind,
        subject=result.subject,
        proof_verified=result.proof_verified,
        valid=result.valid,
        threshold=result.public_signals.threshold,
        nullifier=str(result.nullifier),
        verification_time_ms=result.verification_time_ms,
        error=result.error,
        calldata=generate_solidity_calldata(envelope) if result.proof_verified else None,
    )
