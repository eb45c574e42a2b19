"""
Attestation Service Dependencies
================================

Process-wide engine, prover and verifier instances for route handlers.
"""

from typing import Annotated

from fastapi import Depends

from credlink.auth.capabilities import Role
from credlink.auth.dependencies import require_role
from credlink.scoring import AttestationGateway, ScoringEngine
from credlink.zk import CreditProver, CreditVerifier


_engine: ScoringEngine | None = None
_prover: CreditProver | None = None
_verifier: CreditVerifier | None = None


def get_engine() -> ScoringEngine:
    """Get the scoring engine over the global profile store."""
    global _engine
    if _engine is None:
        _engine = ScoringEngine()
    return _engine


def get_prover() -> CreditProver:
    global _prover
    if _prover is None:
        _prover = CreditProver()
    return _prover


def get_verifier() -> CreditVerifier:
    global _verifier
    if _verifier is None:
        _verifier = CreditVerifier()
    return _verifier


def reset_dependencies() -> None:
    """Drop cached instances so they pick up replaced backends or stores."""
    global _engine, _prover, _verifier
    _engine = None
    _prover = None
    _verifier = None


async def get_gateway(
    token: Annotated[str, Depends(require_role(Role.VERIFIER))],
    engine: Annotated[ScoringEngine, Depends(get_engine)],
    verifier: Annotated[CreditVerifier, Depends(get_verifier)],
) -> AttestationGateway:
    """Gateway acting with the caller's verifier capability."""
    return AttestationGateway(engine, token, verifier)


EngineDep = Annotated[ScoringEngine, Depends(get_engine)]
ProverDep = Annotated[CreditProver, Depends(get_prover)]
VerifierDep = Annotated[CreditVerifier, Depends(get_verifier)]
GatewayDep = Annotated[AttestationGateway, Depends(get_gateway)]
