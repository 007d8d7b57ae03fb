"""
Checked arithmetic for python's builtin ``int`` and ``float``.

``int`` is unbounded, so add/sub/mul never fail; ``/`` is true division
exactly as the plain operator computes it. ``float`` results are
classified after the plain operation: anything non-finite fails with
``ErrorKind.NON_FINITE``. A zero divisor fails with
``ErrorKind.DIVISION_BY_ZERO`` for both types, matching the
``ZeroDivisionError`` the plain operator raises.
"""
import math

from safemath.ops import OperationKind, _register_native, unsupported_operands
from safemath.outcome import Err, ErrorKind, Ok, Outcome

_DIVISIONS = (OperationKind.DIV, OperationKind.REM)


def check_finite(value) -> Outcome:
    if math.isfinite(value):
        return Ok(value)
    return Err(ErrorKind.NON_FINITE)


@_register_native(int)
def _checked_int(kind: OperationKind, lhs: int, rhs) -> Outcome:
    if type(rhs) is not int:
        raise unsupported_operands(kind, lhs, rhs)

    if kind in _DIVISIONS and rhs == 0:
        return Err(ErrorKind.DIVISION_BY_ZERO)

    try:
        return Ok(kind.operator(lhs, rhs))
    except OverflowError:
        # true division of integers too large for a float
        return Err(ErrorKind.OVERFLOW)


@_register_native(float)
def _checked_float(kind: OperationKind, lhs: float, rhs) -> Outcome:
    if type(rhs) is not float:
        raise unsupported_operands(kind, lhs, rhs)

    if kind in _DIVISIONS and rhs == 0.0:
        return Err(ErrorKind.DIVISION_BY_ZERO)

    return check_finite(kind.operator(lhs, rhs))
