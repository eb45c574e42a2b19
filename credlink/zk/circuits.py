"""
Predicate Circuits
==================

Reference evaluation of the three credit predicate circuits. Each circuit
is a pure function of a private witness and one public threshold to a
boolean verdict. The prover runs these before handing the witness to a
proving backend, so out-of-range or unsatisfiable witnesses are rejected
before any constraint system is touched.

Circuits:
- wallet_age_proof:    wallet_age_days >= threshold
- repayment_proof:     repaid_loans * 100 >= total_loans * min_repayment_rate
- default_ratio_proof: defaulted_loans * 100 <= total_loans * max_default_rate

Rate circuits also constrain repaid/defaulted <= total_loans.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from credlink.errors import ConstraintError, RangeError
from credlink.zk.comparator import DEFAULT_BITS, check_range, gte, lte
from credlink.zk.models import PredicateKind


PERCENT_SCALE = 100


# =============================================================================
# Witnesses (private facts)
# =============================================================================


@dataclass(frozen=True, repr=False)
class WalletAgeWitness:
    """Private input for the wallet age circuit."""

    wallet_age_days: int

    def __repr__(self) -> str:
        return "WalletAgeWitness(<private>)"


@dataclass(frozen=True, repr=False)
class RepaymentWitness:
    """Private input for the repayment circuit."""

    total_loans: int
    repaid_loans: int

    def __repr__(self) -> str:
        return "RepaymentWitness(<private>)"


@dataclass(frozen=True, repr=False)
class DefaultRatioWitness:
    """Private input for the default ratio circuit."""

    total_loans: int
    defaulted_loans: int

    def __repr__(self) -> str:
        return "DefaultRatioWitness(<private>)"


Witness = WalletAgeWitness | RepaymentWitness | DefaultRatioWitness


@dataclass(frozen=True)
class CircuitOutput:
    """Verdict of one circuit evaluation."""

    kind: PredicateKind
    threshold: int
    valid: bool

    # Zero-loan history; the verdict is trivially decided
    degenerate: bool = False


# =============================================================================
# Circuits
# =============================================================================


class PredicateCircuit(ABC):
    """Base class for a single-threshold predicate circuit."""

    kind: ClassVar[PredicateKind]
    circuit_name: ClassVar[str]
    threshold_name: ClassVar[str]
    witness_type: ClassVar[type]

    def __init__(self, bits: int = DEFAULT_BITS) -> None:
        self.bits = bits

    @property
    def product_bits(self) -> int:
        """Width of cross-multiplied values."""
        return 2 * self.bits

    def evaluate(self, witness: Witness, threshold: int) -> CircuitOutput:
        """
        Evaluate the predicate.

        Raises:
            RangeError: If any input is outside the circuit's bit width
            ConstraintError: If the witness cannot satisfy the circuit
        """
        if not isinstance(witness, self.witness_type):
            raise TypeError(
                f"{self.circuit_name} expects {self.witness_type.__name__}, "
                f"got {type(witness).__name__}"
            )
        check_range(threshold, self.bits, self.threshold_name)
        return self._evaluate(witness, threshold)

    @abstractmethod
    def _evaluate(self, witness: Any, threshold: int) -> CircuitOutput:
        ...

    @abstractmethod
    def circuit_input(self, witness: Any, threshold: int) -> dict[str, int]:
        """Signal assignment in the compiled circuit's naming."""
        ...


class WalletAgeCircuit(PredicateCircuit):
    """Proves account longevity without revealing the exact age."""

    kind = PredicateKind.WALLET_AGE
    circuit_name = "wallet_age_proof"
    threshold_name = "threshold"
    witness_type = WalletAgeWitness

    def _evaluate(self, witness: WalletAgeWitness, threshold: int) -> CircuitOutput:
        age = check_range(witness.wallet_age_days, self.bits, "wallet_age_days")
        return CircuitOutput(
            kind=self.kind,
            threshold=threshold,
            valid=gte(age, threshold, self.bits),
        )

    def circuit_input(self, witness: WalletAgeWitness, threshold: int) -> dict[str, int]:
        return {"walletAgeDays": witness.wallet_age_days, "threshold": threshold}


class _RateCircuit(PredicateCircuit):
    """Shared checks for the percentage circuits."""

    def _check_rate(self, rate: int) -> int:
        if rate > PERCENT_SCALE:
            raise RangeError(f"{self.threshold_name}={rate} exceeds {PERCENT_SCALE}%")
        return rate

    def _check_counts(self, total: int, part: int, part_name: str) -> None:
        check_range(total, self.bits, "total_loans")
        check_range(part, self.bits, part_name)
        if not lte(part, total, self.bits):
            raise ConstraintError(f"{part_name} cannot exceed total_loans")


class RepaymentCircuit(_RateCircuit):
    """Proves repaid_loans / total_loans >= min_repayment_rate%."""

    kind = PredicateKind.REPAYMENT
    circuit_name = "repayment_proof"
    threshold_name = "min_repayment_rate"
    witness_type = RepaymentWitness

    def _evaluate(self, witness: RepaymentWitness, threshold: int) -> CircuitOutput:
        rate = self._check_rate(threshold)
        self._check_counts(witness.total_loans, witness.repaid_loans, "repaid_loans")

        repayment_rate = witness.repaid_loans * PERCENT_SCALE
        required = witness.total_loans * rate

        return CircuitOutput(
            kind=self.kind,
            threshold=threshold,
            valid=gte(repayment_rate, required, self.product_bits),
            degenerate=witness.total_loans == 0,
        )

    def circuit_input(self, witness: RepaymentWitness, threshold: int) -> dict[str, int]:
        return {
            "totalLoans": witness.total_loans,
            "repaidLoans": witness.repaid_loans,
            "minRepaymentRate": threshold,
        }


class DefaultRatioCircuit(_RateCircuit):
    """Proves defaulted_loans / total_loans <= max_default_rate%."""

    kind = PredicateKind.DEFAULT_RATIO
    circuit_name = "default_ratio_proof"
    threshold_name = "max_default_rate"
    witness_type = DefaultRatioWitness

    def _evaluate(self, witness: DefaultRatioWitness, threshold: int) -> CircuitOutput:
        rate = self._check_rate(threshold)
        self._check_counts(witness.total_loans, witness.defaulted_loans, "defaulted_loans")

        default_rate = witness.defaulted_loans * PERCENT_SCALE
        allowed = witness.total_loans * rate

        return CircuitOutput(
            kind=self.kind,
            threshold=threshold,
            valid=lte(default_rate, allowed, self.product_bits),
            degenerate=witness.total_loans == 0,
        )

    def circuit_input(self, witness: DefaultRatioWitness, threshold: int) -> dict[str, int]:
        return {
            "totalLoans": witness.total_loans,
            "defaultedLoans": witness.defaulted_loans,
            "maxDefaultRate": threshold,
        }


CIRCUIT_TYPES: dict[PredicateKind, type[PredicateCircuit]] = {
    PredicateKind.WALLET_AGE: WalletAgeCircuit,
    PredicateKind.REPAYMENT: RepaymentCircuit,
    PredicateKind.DEFAULT_RATIO: DefaultRatioCircuit,
}


def get_circuit(kind: PredicateKind | str, bits: int = DEFAULT_BITS) -> PredicateCircuit:
    """Instantiate the circuit for a predicate kind."""
    return CIRCUIT_TYPES[PredicateKind(kind)](bits)


def circuit_name_for(kind: PredicateKind | str) -> str:
    return CIRCUIT_TYPES[PredicateKind(kind)].circuit_name
