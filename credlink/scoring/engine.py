"""
Scoring Engine
==============

The only writer of credit profiles.

Lifecycle per subject: Unbound -> Bound -> attestation and loan updates.

Every mutation:
1. checks the caller's capability role
2. takes the subject's writer lock
3. validates against the current snapshot
4. derives a new snapshot (score clamped, tier and ratio recomputed)
5. commits profile, event and nullifier atomically

A failure at any step leaves the stored profile untouched.

Version: 0.1.0
"""

import warnings
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from credlink.auth.capabilities import Role, require_capability
from credlink.errors import (
    AlreadyBound,
    DegenerateInputWarning,
    InvalidInput,
    InvalidProof,
    LoanAccountingError,
    NotBound,
    ReplayedProof,
)
from credlink.ledger.store import ProfileStore, get_profile_store
from credlink.logging import get_logger
from credlink.models.profile import CreditProfile, EventReason, ScoreEvent
from credlink.scoring.policy import ScoringPolicy, collateral_for_amount
from credlink.zk.models import PredicateKind, ProofResult, normalize_subject


logger = get_logger(__name__)


class ScoreUpdate(BaseModel):
    """Outcome of a committed score mutation."""

    model_config = ConfigDict(frozen=True)

    subject: str
    previous_score: int
    new_score: int
    previous_tier: int
    new_tier: int
    applied_delta: int
    degenerate: bool = False
    profile: CreditProfile
    event: ScoreEvent

    @property
    def tier_changed(self) -> bool:
        return self.previous_tier != self.new_tier


class ScoringEngine:
    """
    Credit scoring state machine.

    Usage:
        engine = ScoringEngine()
        await engine.bind_identity(admin_token, "0xabc", identity_hash)
        update = await engine.verify_and_update_score(
            verifier_token, "0xabc", proof_result, PredicateKind.REPAYMENT
        )
    """

    def __init__(
        self,
        store: ProfileStore | None = None,
        policy: ScoringPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: Profile ledger (defaults to the global store)
            policy: Scoring policy (defaults to settings)
            clock: Timestamp source for ``last_updated``
        """
        self.store = store or get_profile_store()
        self.policy = policy or ScoringPolicy.from_settings()
        self._clock = clock or (lambda: datetime.now(UTC))

    # =========================================================================
    # Identity
    # =========================================================================

    async def bind_identity(
        self,
        capability: str,
        subject: str,
        identity_hash: str,
    ) -> CreditProfile:
        """
        Bind a subject to an identity hash and open its profile.

        Raises:
            Unauthorized: Without the admin role
            InvalidInput: If the subject or the identity hash is blank
            AlreadyBound: If the subject or the identity hash is already bound
        """
        require_capability(capability, Role.ADMIN)
        subject = self._subject(subject)
        identity_hash = identity_hash.strip()
        if not identity_hash:
            raise InvalidInput("identity_hash must be non-empty", subject=subject)

        async with self.store.lock(subject):
            if await self.store.get(subject) is not None:
                raise AlreadyBound("Subject already has a bound identity", subject=subject)

            owner = await self.store.subject_for_identity(identity_hash)
            if owner is not None:
                raise AlreadyBound("Identity hash is bound to another subject", subject=subject)

            now = self._clock()
            score = self.policy.initial_score
            tier = self.policy.tier_of(score)
            profile = CreditProfile(
                subject=subject,
                identity_hash=identity_hash,
                score=score,
                tier=tier,
                collateral_ratio_bps=self.policy.collateral_ratio_bps(tier),
                bound_at=now,
                last_updated=now,
            )
            await self.store.commit(
                profile,
                self._event(None, profile, EventReason.IDENTITY_BOUND),
            )

        logger.info("identity_bound", subject=subject, score=score, tier=tier)
        return profile

    # =========================================================================
    # Attestations
    # =========================================================================

    async def verify_and_update_score(
        self,
        capability: str,
        subject: str,
        proof_result: ProofResult,
        predicate_kind: PredicateKind | str,
    ) -> ScoreUpdate:
        """
        Apply a verified predicate result to a subject's score.

        Checks run in order: bound, proof valid for this subject and
        predicate, nullifier unused. Rate predicates on an empty loan history
        consume the nullifier without moving the score, as do attestations
        beyond ``max_attestations_per_kind`` for one predicate.

        Raises:
            Unauthorized: Without the verifier role
            NotBound: If the subject has no profile
            InvalidProof: If the result is not a valid, policy-acceptable
                proof of ``predicate_kind`` for ``subject``
            ReplayedProof: If the nullifier was already consumed
        """
        require_capability(capability, Role.VERIFIER)
        subject = self._subject(subject)

        async with self.store.lock(subject):
            profile = await self._require_profile(subject)
            kind = self._check_result(subject, proof_result, predicate_kind)

            nullifier = proof_result.nullifier
            if await self.store.is_consumed(nullifier):
                logger.warning("proof_replay_rejected", subject=subject, predicate=kind.value)
                raise ReplayedProof("Proof nullifier already consumed", subject=subject)

            degenerate = self.policy.is_rate_predicate(kind) and (
                proof_result.degenerate
                or profile.total_loans < self.policy.min_loans_for_rate_proofs
            )

            if degenerate:
                warnings.warn(
                    DegenerateInputWarning(
                        f"{kind.value} proof for {subject} covers fewer than "
                        f"{self.policy.min_loans_for_rate_proofs} loans; score unchanged"
                    ),
                    stacklevel=2,
                )
                reason = EventReason.DEGENERATE_ATTESTATION
                delta = 0
                counts = profile.attestation_counts
            elif (
                profile.attestation_counts.get(kind.value, 0)
                >= self.policy.max_attestations_per_kind
            ):
                logger.info(
                    "attestation_limit_reached",
                    subject=subject,
                    predicate=kind.value,
                    limit=self.policy.max_attestations_per_kind,
                )
                reason = EventReason.ATTESTATION_LIMIT_REACHED
                delta = 0
                counts = profile.attestation_counts
            else:
                reason = EventReason.ATTESTATION
                delta = self.policy.delta_for(kind)
                counts = {
                    **profile.attestation_counts,
                    kind.value: profile.attestation_counts.get(kind.value, 0) + 1,
                }

            updated = self._next_profile(profile, delta, attestation_counts=counts)
            event = await self.store.commit(
                updated,
                self._event(profile, updated, reason, kind, nullifier),
                nullifier,
            )

        logger.info(
            "score_updated",
            subject=subject,
            predicate=kind.value,
            previous_score=profile.score,
            new_score=updated.score,
            tier=updated.tier,
            degenerate=degenerate,
        )

        return self._update(profile, updated, event, degenerate)

    def _check_result(
        self,
        subject: str,
        result: ProofResult,
        predicate_kind: PredicateKind | str,
    ) -> PredicateKind:
        try:
            kind = PredicateKind(predicate_kind)
        except ValueError:
            raise InvalidProof(f"Unknown predicate kind: {predicate_kind!r}", subject=subject) from None

        if not result.proof_verified:
            raise InvalidProof(result.error or "Proof verification failed", subject=subject)
        if not result.valid:
            raise InvalidProof(result.error or "Predicate verdict is false", subject=subject)
        if result.predicate_kind != kind:
            raise InvalidProof(
                f"Proof is for {result.predicate_kind.value}, not {kind.value}",
                subject=subject,
            )
        if normalize_subject(result.subject) != subject:
            raise InvalidProof("Proof is bound to a different subject", subject=subject)
        if not self.policy.threshold_acceptable(kind, result.public_signals.threshold):
            raise InvalidProof(
                f"Threshold {result.public_signals.threshold} is weaker than policy",
                subject=subject,
            )
        return kind

    # =========================================================================
    # Lending Pool Hooks
    # =========================================================================

    async def record_loan(self, capability: str, subject: str) -> ScoreUpdate:
        """Count a newly opened loan. The score does not move."""
        require_capability(capability, Role.LENDING_POOL)
        subject = self._subject(subject)

        async with self.store.lock(subject):
            profile = await self._require_profile(subject)
            updated = self._next_profile(profile, 0, total_loans=profile.total_loans + 1)
            event = await self.store.commit(
                updated,
                self._event(profile, updated, EventReason.LOAN_RECORDED),
            )

        logger.info("loan_recorded", subject=subject, total_loans=updated.total_loans)
        return self._update(profile, updated, event)

    async def record_repayment(self, capability: str, subject: str) -> ScoreUpdate:
        """
        Mark an outstanding loan repaid and apply the repayment bonus.

        Raises:
            LoanAccountingError: If the subject has no outstanding loan
        """
        require_capability(capability, Role.LENDING_POOL)
        subject = self._subject(subject)

        async with self.store.lock(subject):
            profile = await self._require_profile(subject)
            self._require_outstanding(profile)
            updated = self._next_profile(
                profile,
                self.policy.repayment_bonus,
                repaid_loans=profile.repaid_loans + 1,
            )
            event = await self.store.commit(
                updated,
                self._event(profile, updated, EventReason.LOAN_REPAID),
            )

        logger.info(
            "loan_repaid",
            subject=subject,
            previous_score=profile.score,
            new_score=updated.score,
        )
        return self._update(profile, updated, event)

    async def record_liquidation(self, capability: str, subject: str) -> ScoreUpdate:
        """
        Mark an outstanding loan defaulted and apply the liquidation penalty.

        Raises:
            LoanAccountingError: If the subject has no outstanding loan
        """
        require_capability(capability, Role.LENDING_POOL)
        subject = self._subject(subject)

        async with self.store.lock(subject):
            profile = await self._require_profile(subject)
            self._require_outstanding(profile)
            updated = self._next_profile(
                profile,
                -self.policy.liquidation_penalty,
                defaulted_loans=profile.defaulted_loans + 1,
            )
            event = await self.store.commit(
                updated,
                self._event(profile, updated, EventReason.LOAN_LIQUIDATED),
            )

        logger.warning(
            "loan_liquidated",
            subject=subject,
            previous_score=profile.score,
            new_score=updated.score,
        )
        return self._update(profile, updated, event)

    def _require_outstanding(self, profile: CreditProfile) -> None:
        if profile.outstanding_loans <= 0:
            raise LoanAccountingError("No outstanding loan to settle", subject=profile.subject)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_profile(self, subject: str) -> CreditProfile:
        """
        Current profile snapshot.

        Raises:
            NotBound: If the subject is not bound
        """
        return await self._require_profile(self._subject(subject))

    async def is_verified(self, subject: str) -> bool:
        return await self.store.get(normalize_subject(subject)) is not None

    async def get_user_tier(self, subject: str) -> tuple[int, int]:
        """Tier and collateral ratio in basis points."""
        profile = await self.get_profile(subject)
        return profile.tier, profile.collateral_ratio_bps

    async def get_collateral_required(
        self,
        subject: str,
        amount: int | Decimal | str,
    ) -> Decimal:
        profile = await self.get_profile(subject)
        return collateral_for_amount(profile.tier, amount)

    async def get_score_history(self, subject: str, limit: int = 100) -> list[ScoreEvent]:
        """Committed events for a subject, newest first."""
        profile = await self.get_profile(subject)
        return await self.store.get_events(profile.subject, limit)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _subject(self, subject: str) -> str:
        subject = normalize_subject(subject)
        if not subject:
            raise InvalidInput("subject must be non-empty")
        return subject

    async def _require_profile(self, subject: str) -> CreditProfile:
        profile = await self.store.get(subject)
        if profile is None:
            raise NotBound("Subject has no bound identity", subject=subject)
        return profile

    def _next_profile(
        self,
        profile: CreditProfile,
        delta: int,
        **changes: object,
    ) -> CreditProfile:
        score = self.policy.clamp(profile.score + delta)
        tier = self.policy.tier_of(score)
        return profile.evolve(
            score=score,
            tier=tier,
            collateral_ratio_bps=self.policy.collateral_ratio_bps(tier),
            nonce=profile.nonce + 1,
            last_updated=self._clock(),
            **changes,
        )

    def _event(
        self,
        previous: CreditProfile | None,
        updated: CreditProfile,
        reason: EventReason,
        kind: PredicateKind | None = None,
        nullifier: int | None = None,
    ) -> ScoreEvent:
        previous_score = previous.score if previous else updated.score
        previous_tier = previous.tier if previous else updated.tier
        return ScoreEvent(
            subject=updated.subject,
            reason=reason,
            previous_score=previous_score,
            new_score=updated.score,
            applied_delta=updated.score - previous_score,
            previous_tier=previous_tier,
            new_tier=updated.tier,
            predicate_kind=kind,
            nullifier=str(nullifier) if nullifier is not None else None,
            nonce=updated.nonce,
            timestamp=updated.last_updated,
        )

    def _update(
        self,
        previous: CreditProfile,
        updated: CreditProfile,
        event: ScoreEvent,
        degenerate: bool = False,
    ) -> ScoreUpdate:
        return ScoreUpdate(
            subject=updated.subject,
            previous_score=previous.score,
            new_score=updated.score,
            previous_tier=previous.tier,
            new_tier=updated.tier,
            applied_delta=updated.score - previous.score,
            degenerate=degenerate,
            profile=updated,
            event=event,
        )
