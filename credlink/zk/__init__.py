"""
ZK-SNARK Integration Module
===========================

Credit predicate circuits, proving backends, prover and verifier.

Usage:
    from credlink.zk import CreditProver, CreditVerifier

    # Generate a proof
    prover = CreditProver()
    envelope = await prover.prove_wallet_age(
        wallet_age_days=400,
        threshold=30,
        subject="0xabc...",
    )

    # Verify proof
    result = await CreditVerifier().verify(envelope)

Version: 0.1.0
"""

from credlink.zk.backends import (
    MockProvingBackend,
    ProvingBackend,
    SnarkjsBackend,
    get_proving_backend,
    reset_proving_backend,
    set_proving_backend,
)
from credlink.zk.circuits import (
    DefaultRatioWitness,
    RepaymentWitness,
    WalletAgeWitness,
    get_circuit,
)
from credlink.zk.comparator import gte, lte
from credlink.zk.models import (
    PredicateKind,
    ProofEnvelope,
    ProofMetadata,
    ProofResult,
    PublicSignals,
    ZKProof,
)
from credlink.zk.prover import CreditProver, ProofRequest
from credlink.zk.verifier import CreditVerifier, build_envelope, generate_solidity_calldata


__all__ = [
    # Comparator and circuits
    "lte",
    "gte",
    "get_circuit",
    "WalletAgeWitness",
    "RepaymentWitness",
    "DefaultRatioWitness",
    # Backends
    "ProvingBackend",
    "MockProvingBackend",
    "SnarkjsBackend",
    "get_proving_backend",
    "set_proving_backend",
    "reset_proving_backend",
    # Prover
    "CreditProver",
    "ProofRequest",
    # Verifier
    "CreditVerifier",
    "build_envelope",
    "generate_solidity_calldata",
    # Models
    "PredicateKind",
    "ZKProof",
    "PublicSignals",
    "ProofMetadata",
    "ProofEnvelope",
    "ProofResult",
]
