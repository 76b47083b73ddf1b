"""
Numeric backends for plane coordinates and escape-time arithmetic.

The grid and the escape-time loop are written against the small
NumericBackend interface, so the same code runs over:
- FloatBackend: native double-precision floats (Numba-accelerated loop)
- DecimalBackend: decimal.Decimal for deep zooms where doubles run out
  of digits; products and quotients are rounded to a fixed number of
  significant digits (20 by default) to bound digit growth
"""

import math
from decimal import Context, Decimal, ROUND_HALF_EVEN

from .compute import escape_time_float, escape_time_generic


DEFAULT_DECIMAL_DIGITS = 20


class NumericBackend:
    """
    Arithmetic over one real-number type.

    Subclasses provide the element-wise operations; escape_time defaults
    to the generic loop built from them.
    """

    name = None
    zero = None
    two = None
    four = None

    def from_value(self, value):
        raise NotImplementedError

    def add(self, a, b):
        raise NotImplementedError

    def sub(self, a, b):
        raise NotImplementedError

    def mul(self, a, b):
        raise NotImplementedError

    def div(self, a, b):
        raise NotImplementedError

    def abs(self, a):
        raise NotImplementedError

    def lt(self, a, b):
        return a < b

    def min(self, a, b):
        return b if self.lt(b, a) else a

    def to_float(self, a):
        return float(a)

    def escape_time(self, x, y, max_iter, refine=True):
        """Run the escape-time loop; see compute.escape_time_generic."""
        return escape_time_generic(self, x, y, max_iter, refine)

    def __repr__(self):
        return f"{type(self).__name__}()"


class FloatBackend(NumericBackend):
    """Native double-precision floats."""

    name = 'float'
    zero = 0.0
    two = 2.0
    four = 4.0

    def from_value(self, value):
        return float(value)

    def add(self, a, b):
        return a + b

    def sub(self, a, b):
        return a - b

    def mul(self, a, b):
        return a * b

    def div(self, a, b):
        return a / b

    def abs(self, a):
        return math.fabs(a)

    def escape_time(self, x, y, max_iter, refine=True):
        return escape_time_float(x, y, max_iter, refine)


class DecimalBackend(NumericBackend):
    """
    Arbitrary-precision decimals.

    Multiply and divide round to `digits` significant digits. Add and
    subtract use a wider private context, so sums of rounded products are
    exact in practice. Neither touches the thread-global decimal context.
    """

    name = 'decimal'

    def __init__(self, digits=DEFAULT_DECIMAL_DIGITS):
        if digits < 1:
            raise ValueError(f"digits must be positive, got {digits}")
        self.digits = digits
        self.context = Context(prec=digits, rounding=ROUND_HALF_EVEN)
        self._wide = Context(prec=max(28, digits * 3), rounding=ROUND_HALF_EVEN)
        self.zero = Decimal(0)
        self.two = Decimal(2)
        self.four = Decimal(4)

    def from_value(self, value):
        if isinstance(value, Decimal):
            return value
        if isinstance(value, float):
            # repr() gives the shortest string that round-trips the float
            return Decimal(repr(value))
        if isinstance(value, str):
            return Decimal(value.strip())
        return Decimal(value)

    def add(self, a, b):
        return self._wide.add(a, b)

    def sub(self, a, b):
        return self._wide.subtract(a, b)

    def mul(self, a, b):
        return self.context.multiply(a, b)

    def div(self, a, b):
        return self.context.divide(a, b)

    def abs(self, a):
        return a.copy_abs()

    def __repr__(self):
        return f"DecimalBackend(digits={self.digits})"


FLOAT_BACKEND = FloatBackend()
_decimal_backends = {}


def get_backend(use_arbitrary_precision=False, digits=DEFAULT_DECIMAL_DIGITS):
    """
    Return the shared backend instance for a precision mode.

    Args:
        use_arbitrary_precision: True for DecimalBackend, False for floats
        digits: Significant digits kept by the decimal backend

    Returns:
        NumericBackend
    """
    if not use_arbitrary_precision:
        return FLOAT_BACKEND
    backend = _decimal_backends.get(digits)
    if backend is None:
        backend = _decimal_backends[digits] = DecimalBackend(digits)
    return backend
