import operator
from typing import ClassVar, Dict, Tuple

from safemath.ops import CheckedArithmetic, OperationKind, unsupported_operands
from safemath.outcome import Err, ErrorKind, Ok, Outcome
from safemath.utils import int_bounds, trunc_div, trunc_mod

RANGE_1_32 = list(range(1, 33))

# exact (unbounded) integer semantics of each operation. division
# truncates toward zero and the remainder takes the sign of the dividend.
_EXACT = {
    OperationKind.ADD: operator.add,
    OperationKind.SUB: operator.sub,
    OperationKind.MUL: operator.mul,
    OperationKind.DIV: trunc_div,
    OperationKind.REM: trunc_mod,
}

_DIVISIONS = (OperationKind.DIV, OperationKind.REM)


class FixedInt(int, CheckedArithmetic):
    """
    Base class for fixed-width integers. All signed and unsigned ints from
    8 thru 256 bits

    Attributes
    ----------
    bits : int
        Number of bits the value occupies
    is_signed : bool
        Is the value signed?
    min_value : int
        Smallest representable value
    max_value : int
        Largest representable value

    The plain operators keep the type and raise ``OverflowError`` or
    ``ZeroDivisionError`` where the ``checked_*`` methods return an ``Err``.
    ``/`` and ``//`` both truncate toward zero.
    """

    __slots__ = ()

    bits: ClassVar[int]
    is_signed: ClassVar[bool]
    min_value: ClassVar[int]
    max_value: ClassVar[int]

    def __new__(cls, value=0):
        if cls is FixedInt:
            raise TypeError("FixedInt has no width, use a concrete type such as uint8")
        value = operator.index(value)
        if not cls.min_value <= value <= cls.max_value:
            raise OverflowError(f"{value} is out of bounds for {cls.__name__}")
        return super().__new__(cls, value)

    @classmethod
    def bounds(cls) -> Tuple[int, int]:
        return cls.min_value, cls.max_value

    @classmethod
    def from_literal(cls, value):
        if type(value) is not int:
            raise TypeError(f"cannot use {type(value).__name__} literal as {cls.__name__}")
        return cls(value)

    def _operand(self, kind: OperationKind, rhs):
        if type(rhs) is type(self):
            return rhs
        if type(rhs) is int:
            return self.from_literal(rhs)
        raise unsupported_operands(kind, self, rhs)

    def _fit(self, value: int) -> Outcome:
        cls = type(self)
        if cls.min_value <= value <= cls.max_value:
            return Ok(cls(value))
        return Err(ErrorKind.OVERFLOW)

    def _checked(self, kind: OperationKind, rhs) -> Outcome:
        try:
            rhs = self._operand(kind, rhs)
        except OverflowError:
            return Err(ErrorKind.OVERFLOW)

        lhs, rhs = int(self), int(rhs)
        if kind in _DIVISIONS:
            if rhs == 0:
                return Err(ErrorKind.DIVISION_BY_ZERO)
            # MIN / -1 does not fit, and MIN % -1 is treated the same way
            if self.is_signed and lhs == self.min_value and rhs == -1:
                return Err(ErrorKind.OVERFLOW)

        return self._fit(_EXACT[kind](lhs, rhs))

    def checked_add(self, rhs) -> Outcome:
        return self._checked(OperationKind.ADD, rhs)

    def checked_sub(self, rhs) -> Outcome:
        return self._checked(OperationKind.SUB, rhs)

    def checked_mul(self, rhs) -> Outcome:
        return self._checked(OperationKind.MUL, rhs)

    def checked_div(self, rhs) -> Outcome:
        return self._checked(OperationKind.DIV, rhs)

    def checked_rem(self, rhs) -> Outcome:
        return self._checked(OperationKind.REM, rhs)

    def _plain(self, kind: OperationKind, other, reflected=False):
        cls = type(self)
        if type(other) is int:
            other = cls(other)
        elif type(other) is not cls:
            return NotImplemented

        lhs, rhs = (int(other), int(self)) if reflected else (int(self), int(other))
        if kind in _DIVISIONS:
            if rhs == 0:
                raise ZeroDivisionError(f"{cls.__name__} division by zero")
            if cls.is_signed and lhs == cls.min_value and rhs == -1:
                raise OverflowError(f"{cls.__name__} division overflow")

        return cls(_EXACT[kind](lhs, rhs))

    def __add__(self, other):
        return self._plain(OperationKind.ADD, other)

    def __radd__(self, other):
        return self._plain(OperationKind.ADD, other, reflected=True)

    def __sub__(self, other):
        return self._plain(OperationKind.SUB, other)

    def __rsub__(self, other):
        return self._plain(OperationKind.SUB, other, reflected=True)

    def __mul__(self, other):
        return self._plain(OperationKind.MUL, other)

    def __rmul__(self, other):
        return self._plain(OperationKind.MUL, other, reflected=True)

    def __truediv__(self, other):
        return self._plain(OperationKind.DIV, other)

    def __rtruediv__(self, other):
        return self._plain(OperationKind.DIV, other, reflected=True)

    __floordiv__ = __truediv__
    __rfloordiv__ = __rtruediv__

    def __mod__(self, other):
        return self._plain(OperationKind.REM, other)

    def __rmod__(self, other):
        return self._plain(OperationKind.REM, other, reflected=True)

    def __neg__(self):
        return type(self)(-int(self))

    def __pos__(self):
        return self

    def __abs__(self):
        return type(self)(abs(int(self)))

    def __repr__(self):
        return f"{type(self).__name__}({int(self)})"

    __str__ = int.__repr__


def _make_integer_type(is_signed: bool, bits: int) -> type:
    name = f"{'' if is_signed else 'u'}int{bits}"
    lo, hi = int_bounds(is_signed, bits)
    namespace = {
        "__slots__": (),
        "__module__": __name__,
        "__qualname__": name,
        "bits": bits,
        "is_signed": is_signed,
        "min_value": lo,
        "max_value": hi,
    }
    return type(FixedInt)(name, (FixedInt,), namespace)


SIGNED_TYPES: Tuple[type, ...] = tuple(_make_integer_type(True, i * 8) for i in RANGE_1_32)
UNSIGNED_TYPES: Tuple[type, ...] = tuple(_make_integer_type(False, i * 8) for i in RANGE_1_32)

INTEGER_TYPES: Dict[str, type] = {t.__name__: t for t in SIGNED_TYPES + UNSIGNED_TYPES}

globals().update(INTEGER_TYPES)

__all__ = ["FixedInt", "INTEGER_TYPES", "SIGNED_TYPES", "UNSIGNED_TYPES", *INTEGER_TYPES]
