import ast as python_ast
import sys
import warnings

import pytest

from safemath.cli.safemath_expand import _parse_args, expand_files, expand_source
from safemath.exceptions import ReturnTypeException, SafeMathException, SyntaxException
from safemath.warnings import NoArithmeticWarning, SafeMathWarning

SOURCE = """
import safemath
from safemath import Ok, Outcome, safe_math


def untouched(a, b):
    return a + b


@safe_math
def add(a, b) -> Outcome[int]:
    return Ok(a + b)


class Wallet:
    @safemath.safe_math
    def deposit(self, amount) -> Outcome[int]:
        self.balance += amount
        return Ok(self.balance)
"""


@pytest.fixture(autouse=True)
def restore_tracebacklimit(monkeypatch):
    monkeypatch.setattr(sys, "tracebacklimit", 1000, raising=False)


def test_expand_source():
    expanded = expand_source(SOURCE, "wallet.py")
    assert [fn_node.name for fn_node, _ in expanded] == ["add", "deposit"]

    _, add = expanded[0]
    assert add.decorator_list == []
    assert "__safemath__.checked_add(a, b)" in python_ast.unparse(add)


def test_expand_source_output(make_file, capsys):
    path = make_file("wallet.py", SOURCE)
    _parse_args([str(path)])

    out = capsys.readouterr().out
    assert f"# {path}:11 add" in out
    assert f"# {path}:17 deposit" in out
    assert "return Ok(__safemath__.propagate(__safemath__.checked_add(a, b)))" in out
    assert "except __safemath__.Propagate as" in out
    assert "untouched" not in out


def test_function_filter(make_file, capsys):
    path = make_file("wallet.py", SOURCE)
    _parse_args([str(path), "-f", "deposit"])

    out = capsys.readouterr().out
    assert "deposit" in out
    assert " add" not in out


def test_check(make_file, capsys):
    path = make_file("wallet.py", SOURCE)
    _parse_args([str(path), "--check"])
    assert capsys.readouterr().out == ""


def test_output_path(make_file, tmp_path, capsys):
    path = make_file("wallet.py", SOURCE)
    output = tmp_path / "out.py"
    _parse_args([str(path), "-o", str(output)])

    assert capsys.readouterr().out == ""
    assert "checked_add" in output.read_text()


def test_multiple_files(make_file):
    first = make_file("first.py", SOURCE)
    second = make_file("second.py", SOURCE.replace("def add", "def plus"))

    expanded = expand_files([str(first), str(second)])
    assert [fn.name for fn, _ in expanded[first]] == ["add", "deposit"]
    assert [fn.name for fn, _ in expanded[second]] == ["plus", "deposit"]


def test_errors_reported_together(make_file, capsys):
    code = """
from safemath import safe_math

@safe_math
def first(a):
    return a + 1

@safe_math
def second(a) -> int:
    return a + 1
"""
    path = make_file("bad.py", code)

    with pytest.raises(SafeMathException) as e:
        _parse_args([str(path)])

    msg = str(e.value)
    assert msg.count("ReturnTypeException") == 2
    assert 'function "first"' in msg
    assert 'function "second"' in msg
    assert f"Error expanding: {path}" in capsys.readouterr().err


def test_single_error(make_file):
    code = """
from safemath import safe_math

@safe_math
def first(a):
    return a + 1
"""
    path = make_file("bad.py", code)

    with pytest.raises(ReturnTypeException):
        _parse_args([str(path)])


def test_syntax_error(make_file):
    path = make_file("broken.py", "def foo(:\n    pass\n")

    with pytest.raises(SyntaxException):
        _parse_args([str(path)])


def test_warnings(make_file):
    code = """
from safemath import Ok, Outcome, safe_math

@safe_math
def foo(a) -> Outcome[int]:
    return Ok(a)
"""
    path = make_file("foo.py", code)
    path_str = str(path)

    with warnings.catch_warnings(record=True) as w:
        warnings.simplefilter("always")
        _parse_args([path_str])

    assert len(w) == 1
    assert isinstance(w[0].message, NoArithmeticWarning)

    with pytest.raises(SafeMathWarning):
        _parse_args([path_str, "--warnings-control", "error"])

    with warnings.catch_warnings(record=True) as w:
        _parse_args([path_str, "--warnings-control", "none"])
    assert len(w) == 0


def test_traceback_limit(make_file):
    path = make_file("wallet.py", SOURCE)

    _parse_args([str(path), "--check", "--traceback-limit", "5"])
    assert sys.tracebacklimit == 5

    _parse_args([str(path), "--check", "-v"])
    assert sys.tracebacklimit == 1000
