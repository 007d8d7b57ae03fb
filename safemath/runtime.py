"""
Names referenced by rewritten function bodies.

A rewritten function reaches this module through the closure variable
``__safemath__``. Its operands must satisfy the bundled
``CheckedArithmetic`` capability (or be a python builtin number).
"""
from safemath import impls  # noqa: F401  registers the builtin implementations
from safemath.ops import CheckedArithmetic, OperationKind, apply_checked
from safemath.outcome import Err, Propagate, propagate

RUNTIME_NAME = "__safemath__"


def checked_add(lhs, rhs):
    return apply_checked(OperationKind.ADD, lhs, rhs, CheckedArithmetic)


def checked_sub(lhs, rhs):
    return apply_checked(OperationKind.SUB, lhs, rhs, CheckedArithmetic)


def checked_mul(lhs, rhs):
    return apply_checked(OperationKind.MUL, lhs, rhs, CheckedArithmetic)


def checked_div(lhs, rhs):
    return apply_checked(OperationKind.DIV, lhs, rhs, CheckedArithmetic)


def checked_rem(lhs, rhs):
    return apply_checked(OperationKind.REM, lhs, rhs, CheckedArithmetic)


__all__ = [
    "Err",
    "Propagate",
    "RUNTIME_NAME",
    "checked_add",
    "checked_div",
    "checked_mul",
    "checked_rem",
    "checked_sub",
    "propagate",
]
