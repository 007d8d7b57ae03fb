"""
Derivation of the checked arithmetic capabilities for user-defined types.

::

    @derive_checked_ops("add", "sub")
    class Money:
        def __add__(self, other): ...
        def __sub__(self, other): ...

        def try_add(self, other) -> Optional["Money"]: ...
        def try_sub(self, other) -> Optional["Money"]: ...

All five ``checked_<op>`` methods are installed. Requested operations
delegate to the type's ``try_<op>`` primitive, the others always fail with
``ErrorKind.NOT_IMPLEMENTED``.
"""
from typing import Tuple

from safemath.exceptions import (
    DerivationException,
    DuplicateOperation,
    EmptyDerivationRequest,
    ExceptionList,
    MissingPrimitive,
    UnknownOperation,
)
from safemath.ops import CheckedArithmetic, OperationKind
from safemath.outcome import Err, ErrorKind, Ok

_MISSING = object()


def _supported_operations() -> str:
    return ", ".join(OperationKind.values())


def _to_kind(op):
    if isinstance(op, OperationKind):
        return op
    if isinstance(op, str) and OperationKind.is_valid_value(op):
        return OperationKind(op)
    return None


def validate_request(cls, ops) -> Tuple[OperationKind, ...]:
    """
    Check a derivation request before anything is generated.

    All problems are collected and raised together.

    Returns
    -------
    Tuple
        The requested operation kinds, in request order.
    """
    errors = ExceptionList()

    if not isinstance(cls, type):
        raise DerivationException(
            f"checked operations can only be derived for classes, not {type(cls).__name__}"
        )

    if not ops:
        errors.append(
            EmptyDerivationRequest(
                f"no operation requested for `{cls.__qualname__}`",
                hint=f"Supported operations are: {_supported_operations()}",
            )
        )

    kinds = []
    for op in ops:
        kind = _to_kind(op)
        if kind is None:
            errors.append(
                UnknownOperation(
                    f"unknown operation {op!r}",
                    hint=f"Supported operations are: {_supported_operations()}",
                )
            )
        elif kind in kinds:
            errors.append(DuplicateOperation(f"operation '{kind}' requested more than once"))
        else:
            kinds.append(kind)

    for kind in kinds:
        missing = [
            name for name in (kind.dunder, kind.primitive_name) if not callable(getattr(cls, name, None))
        ]
        if missing:
            errors.append(
                MissingPrimitive(
                    f"`{cls.__qualname__}` cannot derive '{kind}': "
                    f"missing {', '.join(f'`{m}`' for m in missing)}"
                )
            )

    if OperationKind.DIV in kinds:
        try:
            zero_of(cls)
        except TypeError:
            errors.append(
                MissingPrimitive(
                    f"`{cls.__qualname__}` cannot derive 'div': no zero value to detect "
                    "division by zero",
                    hint="define a `zero` attribute, or make the constructor callable "
                    "without arguments",
                )
            )

    for kind in OperationKind:
        if kind.method_name in vars(cls):
            errors.append(
                DerivationException(
                    f"`{cls.__qualname__}` already defines `{kind.method_name}`",
                    hint="remove it, or do not derive checked operations for this type",
                )
            )

    errors.raise_if_not_empty()
    return tuple(kinds)


def zero_of(cls):
    """
    The zero value of ``cls``: its ``zero`` attribute (called, if callable),
    or else ``cls()``. Resolved once, when the class is decorated.
    """
    zero = getattr(cls, "zero", _MISSING)
    if zero is _MISSING:
        return cls()
    return zero() if callable(zero) else zero


def _make_derived(cls, kind: OperationKind):
    primitive = kind.primitive_name
    zero = cls.__checked_zero__

    def checked(self, rhs):
        result = getattr(self, primitive)(rhs)
        if result is not None:
            return Ok(result)
        if kind is OperationKind.DIV and rhs == zero:
            return Err(ErrorKind.DIVISION_BY_ZERO)
        return Err(ErrorKind.OVERFLOW)

    checked.__doc__ = f"Checked '{kind.pretty}', delegating to `{primitive}`."
    return checked


def _make_not_implemented(cls, kind: OperationKind):
    def checked(self, rhs):
        return Err(ErrorKind.NOT_IMPLEMENTED)

    checked.__doc__ = f"'{kind.pretty}' was not derived for this type."
    return checked


def derive_checked_ops(*ops):
    """
    Class decorator deriving the checked arithmetic capabilities.

    Arguments
    ---------
    *ops : str | OperationKind
        The operations to derive: any of "add", "sub", "mul", "div", "rem".

    Raises
    ------
    DerivationException
        The request is malformed, or the class cannot support it.
    """

    if len(ops) == 1 and isinstance(ops[0], type):
        # used bare, as `@derive_checked_ops`
        raise EmptyDerivationRequest(
            f"no operation requested for `{ops[0].__qualname__}`",
            hint="use @derive_checked_ops('add', ...) with the operations to derive",
        )

    def decorator(cls):
        kinds = validate_request(cls, ops)
        cls.__checked_zero__ = zero_of(cls) if OperationKind.DIV in kinds else None

        for kind in OperationKind:
            factory = _make_derived if kind in kinds else _make_not_implemented
            method = factory(cls, kind)
            method.__name__ = kind.method_name
            method.__qualname__ = f"{cls.__qualname__}.{kind.method_name}"
            method.__module__ = cls.__module__
            setattr(cls, kind.method_name, method)

        cls.__checked_ops__ = frozenset(kinds)
        CheckedArithmetic.register(cls)
        return cls

    return decorator
