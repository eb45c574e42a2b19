"""
ZK-SNARK Proof Verification
===========================

Verify credit predicate proofs and turn them into ``ProofResult`` records
for the scoring engine.

Verification is stateless and runs before any ledger lock is taken.

Version: 0.1.0
"""

import time
from collections.abc import Sequence
from typing import Any

from credlink.errors import MalformedProof
from credlink.logging import get_logger
from credlink.zk.backends import ProvingBackend, get_proving_backend
from credlink.zk.circuits import circuit_name_for
from credlink.zk.models import (
    PredicateKind,
    ProofEnvelope,
    ProofMetadata,
    ProofResult,
    PublicSignals,
    ZKProof,
    derive_nullifier,
    normalize_subject,
    subject_hash,
)

logger = get_logger(__name__)


class CreditVerifier:
    """
    ZK-SNARK proof verifier.

    The circuit and the subject binding are derived from what the caller
    claims to be verifying, never from prover-supplied metadata. The
    nullifier signal must match the one derived from the claimed kind,
    subject and statement, so a proof cannot be replayed under another
    subject or re-tagged to dodge replay detection.
    """

    def __init__(self, backend: ProvingBackend | None = None) -> None:
        """
        Initialize the verifier.

        Args:
            backend: Proving backend (defaults to the configured one)
        """
        self.backend = backend or get_proving_backend()

    async def verify(
        self,
        envelope: ProofEnvelope,
        predicate_kind: PredicateKind | str | None = None,
    ) -> ProofResult:
        """
        Verify a proof envelope.

        Args:
            envelope: The proof to verify
            predicate_kind: Predicate the caller expects (defaults to the
                envelope's own)

        Returns:
            ProofResult; ``valid`` is true only if the proof verifies and
            its verdict signal is true
        """
        kind = PredicateKind(predicate_kind or envelope.predicate_kind)
        circuit_name = circuit_name_for(kind)
        subject = normalize_subject(envelope.subject)

        signals = envelope.public_signals
        start_time = time.perf_counter()
        error: str | None = None

        expected_nullifier = derive_nullifier(
            kind, subject, signals.threshold, signals.degenerate
        )
        if signals.nullifier != expected_nullifier:
            proof_verified = False
            error = "Nullifier is not bound to this subject and statement"
        else:
            try:
                proof_verified = await self.backend.verify(
                    circuit_name,
                    envelope.proof,
                    signals,
                    subject_hash(subject),
                )
            except FileNotFoundError as e:
                proof_verified = False
                error = str(e)

        verification_time_ms = int((time.perf_counter() - start_time) * 1000)

        if not proof_verified and error is None:
            error = "Proof verification failed"
        elif proof_verified and not signals.valid:
            error = "Predicate verdict is false"

        valid = proof_verified and signals.valid

        logger.info(
            "zk_proof_verified",
            circuit=circuit_name,
            subject=subject,
            proof_verified=proof_verified,
            valid=valid,
            verification_time_ms=verification_time_ms,
        )

        return ProofResult(
            predicate_kind=kind,
            subject=subject,
            public_signals=signals,
            proof_verified=proof_verified,
            valid=valid,
            degenerate=signals.degenerate,
            verification_time_ms=verification_time_ms,
            error=error,
        )

    async def verify_positional(
        self,
        predicate_kind: PredicateKind | str,
        a: Sequence[Any],
        b: Sequence[Sequence[Any]],
        c: Sequence[Any],
        public_signals: Sequence[Any],
        subject: str,
    ) -> ProofResult:
        """
        Verify a proof given in verifier-contract form.

        Raises:
            MalformedProof: If the triple or signals cannot be decoded
        """
        envelope = build_envelope(predicate_kind, a, b, c, public_signals, subject)
        return await self.verify(envelope, predicate_kind)


def build_envelope(
    predicate_kind: PredicateKind | str,
    a: Sequence[Any],
    b: Sequence[Sequence[Any]],
    c: Sequence[Any],
    public_signals: Sequence[Any],
    subject: str,
) -> ProofEnvelope:
    """
    Decode the positional wire form into an envelope.

    Raises:
        MalformedProof: On any decoding failure
    """
    try:
        kind = PredicateKind(predicate_kind)
    except ValueError as e:
        raise MalformedProof(f"Unknown predicate kind: {predicate_kind!r}") from e

    if not isinstance(subject, str) or not subject.strip():
        raise MalformedProof("Subject must be a non-empty string")

    signals = PublicSignals.from_positional(public_signals)

    try:
        proof = ZKProof.from_triple(a, b, c)
    except (TypeError, ValueError) as e:
        raise MalformedProof(f"Invalid proof triple: {e}") from e

    return ProofEnvelope(
        proof=proof,
        public_signals=signals,
        metadata=ProofMetadata(
            predicate_kind=kind,
            circuit_name=circuit_name_for(kind),
            proving_time_ms=0,
            subject_hash=subject_hash(subject),
            degenerate=signals.degenerate,
        ),
        subject=normalize_subject(subject),
    )


def generate_solidity_calldata(envelope: ProofEnvelope) -> dict[str, Any]:
    """
    Generate calldata for on-chain verification.

    Returns:
        Dictionary with proof array and public inputs for Solidity
    """
    calldata = envelope.proof.to_calldata()
    public_inputs = envelope.public_signals.to_positional()

    return {
        "proof": calldata,
        "publicInputs": public_inputs,
        "solidityCall": f"verifyAndUpdateScore({calldata}, {public_inputs}, {envelope.subject})",
    }
