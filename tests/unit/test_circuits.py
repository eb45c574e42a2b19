"""
Unit tests for the credit predicate circuits.
"""

import pytest

from credlink.errors import ConstraintError, RangeError
from credlink.zk.circuits import (
    DefaultRatioCircuit,
    DefaultRatioWitness,
    RepaymentCircuit,
    RepaymentWitness,
    WalletAgeCircuit,
    WalletAgeWitness,
    circuit_name_for,
    get_circuit,
)
from credlink.zk.models import PredicateKind


class TestWalletAgeCircuit:
    """Tests for wallet_age_days >= threshold."""

    def test_equal_to_threshold_is_valid(self) -> None:
        """The bound is inclusive."""
        output = WalletAgeCircuit().evaluate(WalletAgeWitness(wallet_age_days=365), 365)

        assert output.valid is True
        assert output.threshold == 365
        assert output.kind == PredicateKind.WALLET_AGE

    def test_one_below_threshold_is_invalid(self) -> None:
        output = WalletAgeCircuit().evaluate(WalletAgeWitness(wallet_age_days=364), 365)
        assert output.valid is False

    def test_inclusive_boundary_across_thresholds(self) -> None:
        circuit = WalletAgeCircuit()
        for threshold in (1, 30, 90, 365, 1000):
            assert circuit.evaluate(WalletAgeWitness(threshold), threshold).valid is True
            assert circuit.evaluate(WalletAgeWitness(threshold - 1), threshold).valid is False

    def test_age_out_of_range(self) -> None:
        with pytest.raises(RangeError):
            WalletAgeCircuit().evaluate(WalletAgeWitness(wallet_age_days=2**32), 30)

    def test_negative_threshold(self) -> None:
        with pytest.raises(RangeError):
            WalletAgeCircuit().evaluate(WalletAgeWitness(wallet_age_days=10), -1)

    def test_circuit_input(self) -> None:
        assert WalletAgeCircuit().circuit_input(WalletAgeWitness(400), 365) == {
            "walletAgeDays": 400,
            "threshold": 365,
        }


class TestRepaymentCircuit:
    """Tests for repaid_loans * 100 >= total_loans * min_repayment_rate."""

    def test_exact_threshold_is_valid(self) -> None:
        """10 loans, 8 repaid, 80% required: 800 >= 800."""
        output = RepaymentCircuit().evaluate(
            RepaymentWitness(total_loans=10, repaid_loans=8), 80
        )
        assert output.valid is True
        assert output.degenerate is False

    def test_below_threshold_is_invalid(self) -> None:
        output = RepaymentCircuit().evaluate(
            RepaymentWitness(total_loans=10, repaid_loans=7), 80
        )
        assert output.valid is False

    def test_matches_cross_multiplication(self) -> None:
        circuit = RepaymentCircuit()
        for total in range(0, 8):
            for repaid in range(0, total + 1):
                for rate in (0, 33, 50, 80, 100):
                    output = circuit.evaluate(RepaymentWitness(total, repaid), rate)
                    assert output.valid == (repaid * 100 >= total * rate)

    def test_zero_loans_is_degenerate(self) -> None:
        """An empty history passes trivially and is flagged."""
        output = RepaymentCircuit().evaluate(
            RepaymentWitness(total_loans=0, repaid_loans=0), 80
        )
        assert output.valid is True
        assert output.degenerate is True

    def test_repaid_above_total_is_unsatisfiable(self) -> None:
        with pytest.raises(ConstraintError, match="repaid_loans cannot exceed total_loans"):
            RepaymentCircuit().evaluate(RepaymentWitness(total_loans=5, repaid_loans=6), 80)

    def test_rate_above_100_rejected(self) -> None:
        with pytest.raises(RangeError):
            RepaymentCircuit().evaluate(RepaymentWitness(total_loans=5, repaid_loans=5), 101)

    def test_products_wider_than_inputs(self) -> None:
        """Cross-multiplied values use the wider product width."""
        top = 2**32 - 1
        output = RepaymentCircuit().evaluate(
            RepaymentWitness(total_loans=top, repaid_loans=top), 100
        )
        assert output.valid is True

    def test_wrong_witness_type(self) -> None:
        with pytest.raises(TypeError):
            RepaymentCircuit().evaluate(WalletAgeWitness(10), 80)  # type: ignore[arg-type]


class TestDefaultRatioCircuit:
    """Tests for defaulted_loans * 100 <= total_loans * max_default_rate."""

    def test_within_limit_is_valid(self) -> None:
        """20 loans, 3 defaulted, 20% allowed: 300 <= 400."""
        output = DefaultRatioCircuit().evaluate(
            DefaultRatioWitness(total_loans=20, defaulted_loans=3), 20
        )
        assert output.valid is True

    def test_over_limit_is_invalid(self) -> None:
        """20 loans, 5 defaulted, 20% allowed: 500 <= 400 fails."""
        output = DefaultRatioCircuit().evaluate(
            DefaultRatioWitness(total_loans=20, defaulted_loans=5), 20
        )
        assert output.valid is False

    def test_exact_limit_is_valid(self) -> None:
        output = DefaultRatioCircuit().evaluate(
            DefaultRatioWitness(total_loans=20, defaulted_loans=4), 20
        )
        assert output.valid is True

    def test_zero_loans_only_passes_without_defaults(self) -> None:
        output = DefaultRatioCircuit().evaluate(
            DefaultRatioWitness(total_loans=0, defaulted_loans=0), 20
        )
        assert output.valid is True
        assert output.degenerate is True

    def test_defaulted_above_total_is_unsatisfiable(self) -> None:
        with pytest.raises(ConstraintError):
            DefaultRatioCircuit().evaluate(
                DefaultRatioWitness(total_loans=2, defaulted_loans=3), 20
            )

    def test_circuit_input(self) -> None:
        assert DefaultRatioCircuit().circuit_input(DefaultRatioWitness(20, 3), 20) == {
            "totalLoans": 20,
            "defaultedLoans": 3,
            "maxDefaultRate": 20,
        }


class TestCircuitRegistry:
    """Tests for circuit lookup."""

    def test_get_circuit_by_string(self) -> None:
        assert isinstance(get_circuit("repayment"), RepaymentCircuit)
        assert isinstance(get_circuit(PredicateKind.DEFAULT_RATIO), DefaultRatioCircuit)

    def test_circuit_names(self) -> None:
        assert circuit_name_for(PredicateKind.WALLET_AGE) == "wallet_age_proof"
        assert circuit_name_for("repayment") == "repayment_proof"
        assert circuit_name_for("default_ratio") == "default_ratio_proof"

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError):
            get_circuit("credit_score")

    def test_witness_repr_hides_values(self) -> None:
        assert "12345" not in repr(WalletAgeWitness(wallet_age_days=12345))
        assert "private" in repr(RepaymentWitness(total_loans=10, repaid_loans=8))
