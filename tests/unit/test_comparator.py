"""
Unit tests for the fixed-width comparator.
"""

import pytest

from credlink.errors import RangeError
from credlink.zk.comparator import check_range, gt, gte, lt, lte, max_value


class TestComparisons:
    """Tests for lt/gt/lte/gte."""

    def test_equal_values(self) -> None:
        """Equal values satisfy both inclusive comparisons."""
        assert lte(30, 30) is True
        assert gte(30, 30) is True
        assert lt(30, 30) is False
        assert gt(30, 30) is False

    def test_strict_ordering(self) -> None:
        assert lt(29, 30) is True
        assert gt(31, 30) is True
        assert gte(29, 30) is False
        assert lte(31, 30) is False

    def test_extremes_of_bit_width(self) -> None:
        """Zero and the largest 32-bit value compare correctly."""
        top = max_value(32)

        assert top == 2**32 - 1
        assert gte(top, 0) is True
        assert lte(0, top) is True
        assert gte(0, top) is False
        assert lte(top, top) is True

    def test_agrees_with_integer_ordering(self) -> None:
        """Comparator matches Python's integer ordering on small values."""
        for a in range(0, 12):
            for b in range(0, 12):
                assert lte(a, b) == (a <= b)
                assert gte(a, b) == (a >= b)

    def test_custom_bit_width(self) -> None:
        assert gte(255, 0, bits=8) is True
        with pytest.raises(RangeError):
            gte(256, 0, bits=8)


class TestRangeChecks:
    """Tests for input range validation."""

    @pytest.mark.parametrize("value", [-1, 2**32, 2**40])
    def test_out_of_range_rejected(self, value: int) -> None:
        with pytest.raises(RangeError, match="outside unsigned 32-bit range"):
            lte(value, 1)

    @pytest.mark.parametrize("value", [True, 1.0, "1", None])
    def test_non_integers_rejected(self, value: object) -> None:
        """Floats, bools and strings never reach the comparison."""
        with pytest.raises(RangeError, match="must be an integer"):
            gte(value, 1)  # type: ignore[arg-type]

    def test_check_range_returns_value(self) -> None:
        assert check_range(42) == 42

    def test_range_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            check_range(-5, name="threshold")
