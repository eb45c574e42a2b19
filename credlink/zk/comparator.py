"""
Fixed-Width Comparator
======================

Exact unsigned comparisons over integers of a fixed bit width, evaluated
the way a ``LessThan(n)`` constraint gadget evaluates them: the sign of
``a - b`` is read from bit ``n`` of ``a + 2**n - b``. No floats, no
division. Percentages are compared by cross-multiplication at call sites.

Version: 0.1.0
"""

from credlink.errors import RangeError


DEFAULT_BITS = 32


def max_value(bits: int = DEFAULT_BITS) -> int:
    """Largest unsigned value representable in ``bits`` bits."""
    return (1 << bits) - 1


def check_range(value: int, bits: int = DEFAULT_BITS, name: str = "value") -> int:
    """
    Reject anything that is not an unsigned ``bits``-wide integer.

    Raises:
        RangeError: If value is not an int (bools included) or out of range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise RangeError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > max_value(bits):
        raise RangeError(f"{name}={value} outside unsigned {bits}-bit range")
    return value


def _less_than(a: int, b: int, bits: int) -> bool:
    check_range(a, bits, "a")
    check_range(b, bits, "b")
    # Bit `bits` is set exactly when a >= b.
    return ((a + (1 << bits) - b) >> bits) == 0


def lt(a: int, b: int, bits: int = DEFAULT_BITS) -> bool:
    """a < b"""
    return _less_than(a, b, bits)


def gt(a: int, b: int, bits: int = DEFAULT_BITS) -> bool:
    """a > b"""
    return _less_than(b, a, bits)


def lte(a: int, b: int, bits: int = DEFAULT_BITS) -> bool:
    """a <= b"""
    return not _less_than(b, a, bits)


def gte(a: int, b: int, bits: int = DEFAULT_BITS) -> bool:
    """a >= b"""
    return not _less_than(a, b, bits)
