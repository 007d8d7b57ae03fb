import math
import struct

from safemath.impls import check_finite
from safemath.ops import CheckedArithmetic, OperationKind, unsupported_operands
from safemath.outcome import Err, ErrorKind, Outcome

_DIVISIONS = (OperationKind.DIV, OperationKind.REM)


def round_to_binary32(value: float) -> float:
    """
    Round a python float to the nearest IEEE-754 single precision value.
    Values beyond the single precision range become infinite.
    """
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


class float32(float, CheckedArithmetic):
    """
    Single precision float. Arithmetic is carried out in double precision
    and rounded back, which is exact for + - * / and %.
    """

    __slots__ = ()

    def __new__(cls, value=0.0):
        return super().__new__(cls, round_to_binary32(float(value)))

    @classmethod
    def from_literal(cls, value):
        if type(value) not in (int, float):
            raise TypeError(f"cannot use {type(value).__name__} literal as {cls.__name__}")
        return cls(value)

    def _operand(self, kind: OperationKind, rhs):
        if type(rhs) is type(self):
            return rhs
        if type(rhs) in (int, float):
            return self.from_literal(rhs)
        raise unsupported_operands(kind, self, rhs)

    def _checked(self, kind: OperationKind, rhs) -> Outcome:
        try:
            rhs = self._operand(kind, rhs)
        except OverflowError:
            return Err(ErrorKind.OVERFLOW)

        if kind in _DIVISIONS and rhs == 0.0:
            return Err(ErrorKind.DIVISION_BY_ZERO)

        return check_finite(type(self)(kind.operator(float(self), float(rhs))))

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
        if type(other) in (int, float):
            other = cls(other)
        elif type(other) is not cls:
            return NotImplemented

        lhs, rhs = (float(other), float(self)) if reflected else (float(self), float(other))
        return cls(kind.operator(lhs, rhs))

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

    def __mod__(self, other):
        return self._plain(OperationKind.REM, other)

    def __rmod__(self, other):
        return self._plain(OperationKind.REM, other, reflected=True)

    def __neg__(self):
        return type(self)(-float(self))

    def __pos__(self):
        return self

    def __abs__(self):
        return type(self)(abs(float(self)))

    def __repr__(self):
        return f"{type(self).__name__}({float(self)!r})"

    __str__ = float.__repr__
