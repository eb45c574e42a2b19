"""
Attestation Gateway
===================

Narrow interface the UI and lending layers call into.

The gateway verifies proofs before handing results to the scoring engine,
so no verification work happens while a subject's lock is held. It holds a
verifier capability and fails closed: malformed input raises
``MalformedProof`` and an unverifiable proof is rejected by the engine as
``InvalidProof``.

Version: 0.1.0
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from credlink.logging import get_logger
from credlink.models.profile import CreditProfile
from credlink.scoring.engine import ScoreUpdate, ScoringEngine
from credlink.scoring.policy import collateral_for_amount
from credlink.zk.models import PredicateKind, ProofEnvelope
from credlink.zk.verifier import CreditVerifier, build_envelope


logger = get_logger(__name__)


def user_profile_view(profile: CreditProfile) -> dict[str, Any]:
    """Compact profile keyed the way the dashboard reads it."""
    return {
        "score": profile.score,
        "tier": profile.tier,
        "collateralRatio": profile.collateral_ratio_bps,
        "totalLoans": profile.total_loans,
        "repaidLoans": profile.repaid_loans,
        "lastUpdated": int(profile.last_updated.timestamp()),
    }


class AttestationGateway:
    """Verifier-facing entry points over a scoring engine."""

    def __init__(
        self,
        engine: ScoringEngine,
        capability: str,
        verifier: CreditVerifier | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            engine: Scoring engine that owns the profiles
            capability: Capability token carrying the verifier role
            verifier: Proof verifier (defaults to the configured backend)
        """
        self.engine = engine
        self.verifier = verifier or CreditVerifier()
        self._capability = capability

    async def verify_and_update_score(
        self,
        a: Sequence[Any],
        b: Sequence[Sequence[Any]],
        c: Sequence[Any],
        public_signals: Sequence[Any],
        subject: str,
        *,
        predicate_kind: PredicateKind | str,
    ) -> ScoreUpdate:
        """
        Verify a positional proof and apply it.

        Args:
            a, b, c: Affine proof triple
            public_signals: ``[threshold, nullifier, valid, degenerate]``
            subject: Identity the proof is bound to
            predicate_kind: Predicate the proof claims

        Raises:
            MalformedProof: If the triple or signals cannot be decoded
            NotBound, InvalidProof, ReplayedProof: From the scoring engine
        """
        envelope = build_envelope(predicate_kind, a, b, c, public_signals, subject)
        return await self.submit(envelope, predicate_kind)

    async def submit(
        self,
        envelope: ProofEnvelope,
        predicate_kind: PredicateKind | str | None = None,
    ) -> ScoreUpdate:
        """Verify a proof envelope and apply it."""
        kind = PredicateKind(predicate_kind or envelope.predicate_kind)
        result = await self.verifier.verify(envelope, kind)

        if not result.valid:
            logger.warning(
                "attestation_rejected",
                subject=result.subject,
                predicate=kind.value,
                error=result.error,
            )

        return await self.engine.verify_and_update_score(
            self._capability,
            envelope.subject,
            result,
            kind,
        )

    async def get_user_profile(self, subject: str) -> dict[str, Any]:
        """
        Profile in the shape the UI consumes.

        Raises:
            NotBound: If the subject is not bound
        """
        return user_profile_view(await self.engine.get_profile(subject))

    async def is_identity_verified(self, subject: str) -> bool:
        return await self.engine.is_verified(subject)

    @staticmethod
    def get_collateral_for_amount(tier: int, amount: int | float | Decimal | str) -> Decimal:
        return collateral_for_amount(tier, amount)
