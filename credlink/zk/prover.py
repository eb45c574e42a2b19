"""
ZK-SNARK Proof Generation
=========================

Generates credit predicate proofs for a subject.

Each request is evaluated by the reference circuit first (range checks,
constraint checks, verdict), then handed to the configured proving backend.
Proof generation is stateless; ``prove_many`` runs requests concurrently.
Nullifiers are derived from the statement, so proving the same fact twice
reproduces its nullifier.

Version: 0.1.0
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from credlink.config import settings
from credlink.logging import get_logger
from credlink.zk.backends import ProvingBackend, get_proving_backend
from credlink.zk.circuits import (
    DefaultRatioWitness,
    RepaymentWitness,
    WalletAgeWitness,
    Witness,
    get_circuit,
)
from credlink.zk.models import (
    ProofEnvelope,
    ProofMetadata,
    PredicateKind,
    PublicSignals,
    derive_nullifier,
    normalize_subject,
    subject_hash,
)


logger = get_logger(__name__)


@dataclass(frozen=True)
class ProofRequest:
    """One unit of proving work."""

    kind: PredicateKind
    witness: Witness
    threshold: int
    subject: str


class CreditProver:
    """
    Credit predicate proof generator.

    Usage:
        prover = CreditProver()

        envelope = await prover.prove_repayment(
            total_loans=10,
            repaid_loans=8,
            min_repayment_rate=80,
            subject="0xabc...",
        )
    """

    def __init__(
        self,
        backend: ProvingBackend | None = None,
        bits: int | None = None,
        max_concurrent: int = 4,
    ) -> None:
        """
        Initialize the prover.

        Args:
            backend: Proving backend (defaults to the configured one)
            bits: Circuit bit width (defaults to settings)
            max_concurrent: Upper bound on proofs generated at once
        """
        self.backend = backend or get_proving_backend()
        self.bits = bits or settings.zk.bit_width
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def prove(
        self,
        kind: PredicateKind | str,
        witness: Witness,
        threshold: int,
        subject: str,
    ) -> ProofEnvelope:
        """
        Generate a proof for any predicate kind.

        Args:
            kind: Predicate to prove
            witness: Private facts matching the predicate
            threshold: Public threshold supplied by the verifying party
            subject: Identity the proof is bound to

        Returns:
            ProofEnvelope carrying the proof, public signals and metadata

        Raises:
            RangeError: If an input is outside the circuit bit width
            ConstraintError: If the witness cannot satisfy the circuit
        """
        kind = PredicateKind(kind)
        circuit = get_circuit(kind, self.bits)

        output = await asyncio.to_thread(circuit.evaluate, witness, threshold)

        if output.degenerate:
            logger.warning(
                "degenerate_witness",
                predicate=kind.value,
                subject=normalize_subject(subject),
            )

        binding = subject_hash(subject)
        expected = PublicSignals(
            threshold=threshold,
            nullifier=derive_nullifier(kind, subject, threshold, output.degenerate),
            valid=output.valid,
            degenerate=output.degenerate,
        )

        proof, public_signals, proving_time_ms = await self.backend.prove(
            circuit.circuit_name,
            circuit.circuit_input(witness, threshold),
            expected,
            binding,
        )

        if (
            public_signals.threshold != expected.threshold
            or public_signals.nullifier != expected.nullifier
            or public_signals.valid != expected.valid
            or public_signals.degenerate != expected.degenerate
        ):
            logger.error(
                "backend_verdict_mismatch",
                circuit=circuit.circuit_name,
                expected=expected.to_positional(),
                actual=public_signals.to_positional(),
            )
            raise RuntimeError(
                f"Backend output for {circuit.circuit_name} disagrees with the reference circuit"
            )

        logger.info(
            "credit_proof_generated",
            predicate=kind.value,
            circuit=circuit.circuit_name,
            verdict=public_signals.valid,
            proving_time_ms=proving_time_ms,
        )

        return ProofEnvelope(
            proof=proof,
            public_signals=public_signals,
            metadata=ProofMetadata(
                predicate_kind=kind,
                circuit_name=circuit.circuit_name,
                proving_time_ms=proving_time_ms,
                subject_hash=binding,
                degenerate=output.degenerate,
            ),
            subject=normalize_subject(subject),
        )

    async def prove_wallet_age(
        self,
        wallet_age_days: int,
        threshold: int,
        subject: str,
    ) -> ProofEnvelope:
        """
        Generate a proof that wallet_age_days >= threshold.

        Args:
            wallet_age_days: Actual wallet age (private)
            threshold: Minimum age in days (public)
            subject: Identity the proof is bound to
        """
        return await self.prove(
            PredicateKind.WALLET_AGE,
            WalletAgeWitness(wallet_age_days=wallet_age_days),
            threshold,
            subject,
        )

    async def prove_repayment(
        self,
        total_loans: int,
        repaid_loans: int,
        min_repayment_rate: int,
        subject: str,
    ) -> ProofEnvelope:
        """Generate a proof that repaid_loans * 100 >= total_loans * min_repayment_rate."""
        return await self.prove(
            PredicateKind.REPAYMENT,
            RepaymentWitness(total_loans=total_loans, repaid_loans=repaid_loans),
            min_repayment_rate,
            subject,
        )

    async def prove_default_ratio(
        self,
        total_loans: int,
        defaulted_loans: int,
        max_default_rate: int,
        subject: str,
    ) -> ProofEnvelope:
        """Generate a proof that defaulted_loans * 100 <= total_loans * max_default_rate."""
        return await self.prove(
            PredicateKind.DEFAULT_RATIO,
            DefaultRatioWitness(total_loans=total_loans, defaulted_loans=defaulted_loans),
            max_default_rate,
            subject,
        )

    async def _prove_with_semaphore(self, request: ProofRequest) -> ProofEnvelope:
        async with self._semaphore:
            return await self.prove(
                request.kind,
                request.witness,
                request.threshold,
                request.subject,
            )

    async def prove_many(
        self,
        requests: Sequence[ProofRequest],
    ) -> list[ProofEnvelope | Exception]:
        """
        Generate proofs concurrently.

        Results are positional; a failed request yields its exception
        instead of an envelope and does not affect the others.
        """
        results = await asyncio.gather(
            *(self._prove_with_semaphore(r) for r in requests),
            return_exceptions=True,
        )

        failed = sum(1 for r in results if isinstance(r, Exception))
        logger.info(
            "credit_proof_batch_complete",
            requested=len(requests),
            failed=failed,
        )

        return list(results)
