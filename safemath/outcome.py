"""
Outcome types returned by checked operations, and the failure taxonomy.
"""
import enum
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from safemath.exceptions import CheckedArithmeticError

T = TypeVar("T")


class ErrorKind(enum.Enum):
    """
    The reason a checked operation failed.
    """

    OVERFLOW = "arithmetic overflow"
    DIVISION_BY_ZERO = "division by zero"
    NON_FINITE = "infinite or NaN value"
    NOT_IMPLEMENTED = "operation not implemented"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default):
        return self.value


@dataclass(frozen=True)
class Err:
    kind: ErrorKind

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self):
        raise CheckedArithmeticError(self.kind)

    def unwrap_or(self, default):
        return default


Outcome = Union[Ok[T], Err]


class Propagate(BaseException):
    """
    Carries a failed outcome out of a rewritten function body.

    Derives from BaseException so that `except Exception` blocks written
    inside a rewritten function cannot intercept it.
    """

    def __init__(self, err: Err):
        super().__init__(err.kind)
        self.err = err


def propagate(outcome):
    """
    Unwrap ``outcome``, or abandon the enclosing rewritten function with it.
    """
    if isinstance(outcome, Ok):
        return outcome.value
    raise Propagate(outcome)
