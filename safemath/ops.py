"""
The checked arithmetic capability set.

Each capability is an abstract base class exposing one method,
``checked_<op>(self, rhs) -> Outcome``. ``CheckedArithmetic`` bundles all
five and is what rewritten function bodies require of their operands. The
free functions ``checked_add`` ... ``checked_rem`` require only the single
capability they exercise.

Python's own ``int`` and ``float`` cannot carry methods, so their
implementations live in a package-private registry (see ``safemath.impls``)
which is consulted before the capability classes. Only types registered
from within this package appear there.
"""
import abc
import ast as python_ast
import enum
import operator
from typing import Any, Callable, Dict, Type

from safemath.outcome import Err, ErrorKind, Outcome
from safemath.utils import StringEnum


class OperationKind(StringEnum):
    ADD = enum.auto()
    SUB = enum.auto()
    MUL = enum.auto()
    DIV = enum.auto()
    REM = enum.auto()

    @property
    def method_name(self) -> str:
        """Name of the checked capability method, e.g. ``checked_add``."""
        return f"checked_{self.value}"

    @property
    def primitive_name(self) -> str:
        """Name of the type-specific checked primitive a derivation delegates to."""
        return f"try_{self.value}"

    @property
    def dunder(self) -> str:
        return _DUNDERS[self.value]

    @property
    def operator(self) -> Callable[[Any, Any], Any]:
        return _OPERATORS[self.value]

    @property
    def pretty(self) -> str:
        return _PRETTY[self.value]

    @classmethod
    def from_ast(cls, op: python_ast.operator) -> "OperationKind | None":
        name = _AST_OPERATORS.get(type(op))
        if name is None:
            return None
        return cls(name)


_DUNDERS = {
    "add": "__add__",
    "sub": "__sub__",
    "mul": "__mul__",
    "div": "__truediv__",
    "rem": "__mod__",
}

_OPERATORS = {
    "add": operator.add,
    "sub": operator.sub,
    "mul": operator.mul,
    "div": operator.truediv,
    "rem": operator.mod,
}

_PRETTY = {"add": "+", "sub": "-", "mul": "*", "div": "/", "rem": "%"}

_AST_OPERATORS = {
    python_ast.Add: "add",
    python_ast.Sub: "sub",
    python_ast.Mult: "mul",
    python_ast.Div: "div",
    python_ast.Mod: "rem",
}


class CheckedAdd(abc.ABC):
    __slots__ = ()

    @abc.abstractmethod
    def checked_add(self, rhs) -> Outcome:
        """Add ``rhs``, failing with ``ErrorKind.OVERFLOW`` instead of overflowing."""


class CheckedSub(abc.ABC):
    __slots__ = ()

    @abc.abstractmethod
    def checked_sub(self, rhs) -> Outcome:
        """Subtract ``rhs``, failing with ``ErrorKind.OVERFLOW`` instead of underflowing."""


class CheckedMul(abc.ABC):
    __slots__ = ()

    @abc.abstractmethod
    def checked_mul(self, rhs) -> Outcome:
        """Multiply by ``rhs``, failing with ``ErrorKind.OVERFLOW`` instead of overflowing."""


class CheckedDiv(abc.ABC):
    __slots__ = ()

    @abc.abstractmethod
    def checked_div(self, rhs) -> Outcome:
        """Divide by ``rhs``, failing with ``ErrorKind.DIVISION_BY_ZERO`` on a zero divisor."""


class CheckedRem(abc.ABC):
    __slots__ = ()

    @abc.abstractmethod
    def checked_rem(self, rhs) -> Outcome:
        """Remainder of division by ``rhs``."""


class CheckedArithmetic(CheckedAdd, CheckedSub, CheckedMul, CheckedDiv, CheckedRem):
    __slots__ = ()


CAPABILITIES: Dict[OperationKind, Type[abc.ABC]] = {
    OperationKind.ADD: CheckedAdd,
    OperationKind.SUB: CheckedSub,
    OperationKind.MUL: CheckedMul,
    OperationKind.DIV: CheckedDiv,
    OperationKind.REM: CheckedRem,
}


# implementations for the closed set of python builtin numeric types.
# only this package registers here.
_NATIVE_IMPLS: Dict[type, Callable[[OperationKind, Any, Any], Outcome]] = {}


def _register_native(typ: type):
    def decorator(fn):
        _NATIVE_IMPLS[typ] = fn
        return fn

    return decorator


def _promote(value, target: type):
    # a bare python literal takes the type of the operand it meets
    if target is float and type(value) is int:
        return float(value)
    from_literal = getattr(target, "from_literal", None)
    if from_literal is None:
        return value
    try:
        return from_literal(value)
    except TypeError:
        # left as is, dispatch reports the operand types
        return value


def _promote_literals(lhs, rhs):
    lhs_type, rhs_type = type(lhs), type(rhs)
    if lhs_type is rhs_type:
        return lhs, rhs
    if {lhs_type, rhs_type} == {int, float}:
        return float(lhs), float(rhs)
    if lhs_type in (int, float):
        lhs = _promote(lhs, rhs_type)
    elif rhs_type in (int, float):
        rhs = _promote(rhs, lhs_type)
    return lhs, rhs


def unsupported_operands(kind: OperationKind, lhs, rhs) -> TypeError:
    return TypeError(
        f"unsupported operand type(s) for {kind.method_name}: "
        f"'{type(lhs).__name__}' and '{type(rhs).__name__}'"
    )


def apply_checked(kind: OperationKind, lhs, rhs, capability: type) -> Outcome:
    """
    Perform the checked operation ``kind`` on ``lhs`` and ``rhs``.

    ``capability`` is the capability class ``lhs`` must satisfy when it is
    not one of the python builtin numeric types.
    """
    try:
        lhs, rhs = _promote_literals(lhs, rhs)
    except OverflowError:
        return Err(ErrorKind.OVERFLOW)

    native = _NATIVE_IMPLS.get(type(lhs))
    if native is not None:
        return native(kind, lhs, rhs)

    if isinstance(lhs, capability):
        return getattr(lhs, kind.method_name)(rhs)

    raise unsupported_operands(kind, lhs, rhs)


def checked_add(lhs, rhs) -> Outcome:
    """
    Checked addition.

    Returns ``Ok(lhs + rhs)``, or ``Err(ErrorKind.OVERFLOW)`` when the result
    does not fit the operands' type.
    """
    return apply_checked(OperationKind.ADD, lhs, rhs, CheckedAdd)


def checked_sub(lhs, rhs) -> Outcome:
    """
    Checked subtraction.

    Returns ``Ok(lhs - rhs)``, or ``Err(ErrorKind.OVERFLOW)`` when the result
    does not fit the operands' type.
    """
    return apply_checked(OperationKind.SUB, lhs, rhs, CheckedSub)


def checked_mul(lhs, rhs) -> Outcome:
    """
    Checked multiplication.

    Returns ``Ok(lhs * rhs)``, or ``Err(ErrorKind.OVERFLOW)`` when the result
    does not fit the operands' type.
    """
    return apply_checked(OperationKind.MUL, lhs, rhs, CheckedMul)


def checked_div(lhs, rhs) -> Outcome:
    """
    Checked division.

    Returns ``Ok(lhs / rhs)``, ``Err(ErrorKind.DIVISION_BY_ZERO)`` when
    ``rhs`` is zero, or ``Err(ErrorKind.OVERFLOW)`` for ``MIN / -1`` on
    signed integers.
    """
    return apply_checked(OperationKind.DIV, lhs, rhs, CheckedDiv)


def checked_rem(lhs, rhs) -> Outcome:
    """
    Checked remainder.

    Returns ``Ok(lhs % rhs)``, ``Err(ErrorKind.DIVISION_BY_ZERO)`` when
    ``rhs`` is zero, or ``Err(ErrorKind.OVERFLOW)`` for ``MIN % -1`` on
    signed integers.
    """
    return apply_checked(OperationKind.REM, lhs, rhs, CheckedRem)
