"""
Scoring Policy
==============

Tier breakpoints, score deltas and threshold floors.

Tier is a pure step function of score. With the default breakpoints
(200, 500, 750):

- Tier 0 (Bronze):   score < 200
- Tier 1 (Silver):   200 <= score < 500
- Tier 2 (Gold):     500 <= score < 750
- Tier 3 (Platinum): score >= 750

Version: 0.1.0
"""

from bisect import bisect_right
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType

from credlink.config import settings
from credlink.config.settings import ScoringSettings
from credlink.errors import RangeError
from credlink.models.profile import MAX_SCORE, TIER_TABLE_BPS
from credlink.zk.models import PredicateKind


BPS_SCALE = 10_000

RATE_PREDICATES = frozenset({PredicateKind.REPAYMENT, PredicateKind.DEFAULT_RATIO})

# (minimum attestations, badge)
ATTESTATION_BADGES: tuple[tuple[int, str], ...] = (
    (10, "Platinum"),
    (5, "Gold"),
    (3, "Silver"),
    (1, "Bronze"),
)


def _default_deltas() -> Mapping[PredicateKind, int]:
    return MappingProxyType({
        PredicateKind.WALLET_AGE: 25,
        PredicateKind.REPAYMENT: 50,
        PredicateKind.DEFAULT_RATIO: 50,
    })


@dataclass(frozen=True)
class ScoringPolicy:
    """Policy constants consumed by the scoring engine."""

    # Lower score bound of tiers 1..3
    breakpoints: tuple[int, ...] = (200, 500, 750)
    max_score: int = MAX_SCORE
    initial_score: int = 0

    deltas: Mapping[PredicateKind, int] = field(default_factory=_default_deltas)
    repayment_bonus: int = 50
    liquidation_penalty: int = 100

    min_loans_for_rate_proofs: int = 1

    # Later attestations of a kind consume their nullifier without a delta
    max_attestations_per_kind: int = 4

    # Least strict thresholds accepted from a proof
    min_wallet_age_days: int = 30
    min_repayment_rate: int = 80
    max_default_rate: int = 20

    def __post_init__(self) -> None:
        if not 0 < self.max_score <= MAX_SCORE:
            raise ValueError(f"max_score must be in (0, {MAX_SCORE}]")
        if len(self.breakpoints) != len(TIER_TABLE_BPS) - 1:
            raise ValueError(
                f"Expected {len(TIER_TABLE_BPS) - 1} tier breakpoints, got {len(self.breakpoints)}"
            )
        bounds = (0, *self.breakpoints, self.max_score)
        if any(lo >= hi for lo, hi in zip(bounds, bounds[1:])):
            raise ValueError("Tier breakpoints must be strictly increasing within (0, max_score]")
        if not 0 <= self.initial_score <= self.max_score:
            raise ValueError("initial_score must be within [0, max_score]")
        if set(self.deltas) != set(PredicateKind):
            raise ValueError("A score delta is required for every predicate kind")
        if self.min_loans_for_rate_proofs < 1:
            raise ValueError("min_loans_for_rate_proofs must be at least 1")
        if self.max_attestations_per_kind < 1:
            raise ValueError("max_attestations_per_kind must be at least 1")

    @classmethod
    def from_settings(cls, scoring: ScoringSettings | None = None) -> "ScoringPolicy":
        scoring = scoring or settings.scoring
        return cls(
            breakpoints=tuple(scoring.tier_breakpoints),
            max_score=scoring.max_score,
            initial_score=scoring.initial_score,
            deltas=MappingProxyType({
                PredicateKind.WALLET_AGE: scoring.wallet_age_delta,
                PredicateKind.REPAYMENT: scoring.repayment_delta,
                PredicateKind.DEFAULT_RATIO: scoring.default_ratio_delta,
            }),
            repayment_bonus=scoring.repayment_bonus,
            liquidation_penalty=scoring.liquidation_penalty,
            min_loans_for_rate_proofs=scoring.min_loans_for_rate_proofs,
            max_attestations_per_kind=scoring.max_attestations_per_kind,
            min_wallet_age_days=scoring.min_wallet_age_days,
            min_repayment_rate=scoring.min_repayment_rate,
            max_default_rate=scoring.max_default_rate,
        )

    def clamp(self, score: int) -> int:
        return max(0, min(self.max_score, score))

    def tier_of(self, score: int) -> int:
        """Tier for a score; monotone non-decreasing."""
        if not 0 <= score <= self.max_score:
            raise RangeError(f"Score {score} outside [0, {self.max_score}]")
        return bisect_right(self.breakpoints, score)

    def collateral_ratio_bps(self, tier: int) -> int:
        try:
            return TIER_TABLE_BPS[tier]
        except KeyError:
            raise RangeError(f"Unknown tier {tier}") from None

    def delta_for(self, kind: PredicateKind) -> int:
        return self.deltas[PredicateKind(kind)]

    def is_rate_predicate(self, kind: PredicateKind) -> bool:
        return PredicateKind(kind) in RATE_PREDICATES

    def threshold_acceptable(self, kind: PredicateKind, threshold: int) -> bool:
        """
        Check that a proof's public threshold is at least as strict as policy.

        A proof of ``repaid >= 0%`` is valid but proves nothing, so the
        ledger only rewards thresholds at or beyond the configured floors.
        """
        kind = PredicateKind(kind)
        if kind == PredicateKind.WALLET_AGE:
            return threshold >= self.min_wallet_age_days
        if kind == PredicateKind.REPAYMENT:
            return self.min_repayment_rate <= threshold <= 100
        return threshold <= self.max_default_rate


def collateral_for_amount(tier: int, amount: int | float | Decimal | str) -> Decimal:
    """
    Collateral required for a principal at a tier.

    Example:
        collateral_for_amount(0, 10) == Decimal("15")
    """
    if tier not in TIER_TABLE_BPS:
        raise RangeError(f"Unknown tier {tier}")
    if isinstance(amount, float):
        # Floats would leak rounding into an exact amount
        amount = str(amount)
    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}") from None
    if not value.is_finite() or value < 0:
        raise ValueError("Amount must be a finite, non-negative number")
    return value * TIER_TABLE_BPS[tier] / BPS_SCALE


def attestation_badge(count: int) -> str | None:
    """Badge earned for a number of accepted attestations."""
    for minimum, badge in ATTESTATION_BADGES:
        if count >= minimum:
            return badge
    return None
