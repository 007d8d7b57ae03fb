import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from safemath import Err, ErrorKind, Ok, float32
from safemath.types.floats import round_to_binary32

F32_MAX = 3.4028234663852886e38


def test_rounding():
    assert round_to_binary32(0.1) != 0.1
    assert round_to_binary32(0.5) == 0.5
    assert round_to_binary32(1e39) == math.inf
    assert round_to_binary32(-1e39) == -math.inf
    assert float32(0.1) == round_to_binary32(0.1)


def test_repr():
    assert repr(float32(0.5)) == "float32(0.5)"


@pytest.mark.parametrize(
    "op,left,right,expected",
    [
        ("add", 1.5, 2.25, Ok(3.75)),
        ("mul", F32_MAX, 2.0, Err(ErrorKind.NON_FINITE)),
        ("add", F32_MAX, F32_MAX, Err(ErrorKind.NON_FINITE)),
        ("sub", -F32_MAX, F32_MAX, Err(ErrorKind.NON_FINITE)),
        ("div", 1.0, 0.0, Err(ErrorKind.DIVISION_BY_ZERO)),
        ("rem", 1.0, 0.0, Err(ErrorKind.DIVISION_BY_ZERO)),
        ("div", 7.0, 2.0, Ok(3.5)),
        ("rem", 7.0, 2.0, Ok(1.0)),
    ],
)
def test_float32_checked(op, left, right, expected):
    result = getattr(float32(left), f"checked_{op}")(float32(right))
    assert result == expected
    if isinstance(result, Ok):
        assert type(result.value) is float32


def test_float32_non_finite_operand():
    assert float32(math.inf).checked_add(float32(1.0)) == Err(ErrorKind.NON_FINITE)
    assert float32(math.nan).checked_mul(float32(1.0)) == Err(ErrorKind.NON_FINITE)


def test_float32_literals():
    assert float32(1.5).checked_add(1) == Ok(2.5)
    assert float32(1.5).checked_add(0.5) == Ok(2.0)
    with pytest.raises(TypeError):
        float32(1.0).checked_add("1")


def test_float32_plain_operators():
    assert type(float32(1.0) + 1) is float32
    assert type(2 * float32(1.5)) is float32
    assert float32(F32_MAX) * 2 == math.inf
    with pytest.raises(ZeroDivisionError):
        float32(1.0) / 0


@pytest.mark.fuzzing
@settings(max_examples=100)
@given(
    left=st.floats(width=32, allow_nan=False, allow_infinity=False),
    right=st.floats(width=32, allow_nan=False, allow_infinity=False),
)
@pytest.mark.parametrize("op", ["add", "sub", "mul", "div"])
def test_float32_finite_or_non_finite(op, left, right):
    result = getattr(float32(left), f"checked_{op}")(float32(right))

    if op == "div" and right == 0.0:
        assert result == Err(ErrorKind.DIVISION_BY_ZERO)
        return

    plain = {
        "add": lambda: float32(left) + float32(right),
        "sub": lambda: float32(left) - float32(right),
        "mul": lambda: float32(left) * float32(right),
        "div": lambda: float32(left) / float32(right),
    }[op]()
    if math.isfinite(plain):
        assert result == Ok(plain)
    else:
        assert result == Err(ErrorKind.NON_FINITE)
