from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _version

from safemath.decorators import safe_math
from safemath.derive import derive_checked_ops
from safemath.exceptions import CheckedArithmeticError
from safemath.ops import (
    CheckedAdd,
    CheckedArithmetic,
    CheckedDiv,
    CheckedMul,
    CheckedRem,
    CheckedSub,
    OperationKind,
    checked_add,
    checked_div,
    checked_mul,
    checked_rem,
    checked_sub,
)
from safemath.outcome import Err, ErrorKind, Ok, Outcome
from safemath.types import INTEGER_TYPES, float32

# uint8 ... int256
globals().update(INTEGER_TYPES)

__version__: str
try:
    __version__ = _version(__name__)
except PackageNotFoundError:
    from safemath.version import version

    __version__ = version
