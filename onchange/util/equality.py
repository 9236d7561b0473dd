"""
Default change predicate.

``same_value`` treats two values as unchanged when they are the same object, or
scalars of the same type with equal value. NaN equals NaN and 0.0 differs from
-0.0, so a write of ``float("nan")`` over NaN is not a change while a sign flip
of zero is.
"""

import math
from decimal import Decimal
from fractions import Fraction
from typing import Any

_VALUE_TYPES = (bool, int, float, complex, str, bytes, Decimal, Fraction)


def _same_float(a: float, b: float) -> bool:
    if math.isnan(a) and math.isnan(b):
        return True
    return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)


def same_value(a: Any, b: Any) -> bool:
    """Identity for objects, typed value equality for scalars."""
    if a is b:
        return True

    if type(a) is not type(b) or not isinstance(a, _VALUE_TYPES):
        return False

    if isinstance(a, float):
        return _same_float(a, b)

    if isinstance(a, complex):
        return _same_float(a.real, b.real) and _same_float(a.imag, b.imag)

    if isinstance(a, Decimal) and a.is_nan() and b.is_nan():
        return True

    return a == b
