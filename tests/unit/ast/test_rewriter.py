import ast as python_ast
import itertools
import os
import textwrap

import pytest

from safemath.ast import identifiers
from safemath.ast.identifiers import TEMPORARY_PREFIX, TemporaryNamer, collect_identifiers
from safemath.ast.rewriter import install_propagation_handler, rewrite_function


class SequentialNamer(TemporaryNamer):
    def __init__(self):
        super().__init__()
        self._n = 0

    def fresh(self):
        self._n += 1
        return f"tmp{self._n}"


def checked(op, left, right):
    return f"__safemath__.propagate(__safemath__.checked_{op}({left}, {right}))"


def parse_function(source):
    return python_ast.parse(textwrap.dedent(source)).body[0]


def rewrite(source):
    new_node, count = rewrite_function(parse_function(source), SequentialNamer())
    return "\n".join(python_ast.unparse(s) for s in new_node.body), count


def test_nested_expression_innermost_first():
    body, count = rewrite(
        """
    def foo(a, b, c):
        return a + b * c
    """
    )
    assert body == f"return {checked('add', 'a', checked('mul', 'b', 'c'))}"
    assert count == 2


@pytest.mark.parametrize(
    "op,name", [("+", "add"), ("-", "sub"), ("*", "mul"), ("/", "div"), ("%", "rem")]
)
def test_arithmetic_operators(op, name):
    body, count = rewrite(
        f"""
    def foo(a, b):
        return a {op} b
    """
    )
    assert body == f"return {checked(name, 'a', 'b')}"
    assert count == 1


@pytest.mark.parametrize("expr", ["a // b", "a ** b", "a | b", "a << b", "-a", "a @ b", "a < b"])
def test_other_operators_untouched(expr):
    body, count = rewrite(
        f"""
    def foo(a, b):
        return {expr}
    """
    )
    assert body == f"return {expr}"
    assert count == 0


def test_operands_of_other_operators_rewritten():
    body, _ = rewrite(
        """
    def foo(a, b):
        return -(a + b) // 2
    """
    )
    assert body == f"return -{checked('add', 'a', 'b')} // 2"


@pytest.mark.parametrize(
    "expr",
    [
        "'%d items' % n",
        "'-' * n",
        "n * b'x'",
        "[0] * n",
        "(0, 1) + t",
        "f'{n}' + s",
        "'a' + s + t",
        "[x for x in xs] + ys",
    ],
)
def test_text_and_sequence_operations_untouched(expr):
    body, count = rewrite(
        f"""
    def foo(n, s, t, xs, ys):
        return {expr}
    """
    )
    assert body == f"return {python_ast.unparse(python_ast.parse(expr))}"
    assert count == 0


def test_recurses_into_other_nodes():
    body, count = rewrite(
        """
    def foo(a, xs, f):
        y = f(a + 1)[a - 1]
        zs = [x * 2 for x in xs if x % 2]
        return y if a else a / 2
    """
    )
    assert body.splitlines() == [
        f"y = f({checked('add', 'a', 1)})[{checked('sub', 'a', 1)}]",
        f"zs = [{checked('mul', 'x', 2)} for x in xs if {checked('rem', 'x', 2)}]",
        f"return y if a else {checked('div', 'a', 2)}",
    ]
    assert count == 5


def test_nested_scopes_not_rewritten():
    body, count = rewrite(
        """
    def foo(a):
        @deco(a + 1)
        def inner(x=a * 2):
            return x + 1
        g = lambda y=a - 1: y / 2
        class C(bases[a % 2]):
            z = a + 1
        return inner()
    """
    )
    assert f"@deco({checked('add', 'a', 1)})" in body
    assert f"def inner(x={checked('mul', 'a', 2)}):" in body
    assert "return x + 1" in body
    assert f"g = lambda y={checked('sub', 'a', 1)}: y / 2" in body
    assert f"class C(bases[{checked('rem', 'a', 2)}]):" in body
    assert "z = a + 1" in body
    assert count == 4


def test_match_patterns_untouched():
    body, count = rewrite(
        """
    def foo(x):
        match x:
            case 1 + 2j:
                return x + 1
    """
    )
    assert "case 1 + 2j:" in body
    assert f"return {checked('add', 'x', 1)}" in body
    assert count == 1


def test_compound_assignment_name():
    body, count = rewrite(
        """
    def foo(total, x):
        total += x * 2
    """
    )
    assert body == f"total = {checked('add', 'total', checked('mul', 'x', 2))}"
    assert count == 2


def test_compound_assignment_attribute():
    body, _ = rewrite(
        """
    def foo(self):
        self.count *= 2
    """
    )
    assert body.splitlines() == [
        "tmp1 = self",
        f"tmp1.count = {checked('mul', 'tmp1.count', 2)}",
    ]


def test_compound_assignment_subscript_evaluates_location_once():
    body, count = rewrite(
        """
    def foo(get, i, v):
        get()[i + 1] -= v
    """
    )
    assert body.splitlines() == [
        "tmp1 = get()",
        f"tmp2 = {checked('add', 'i', 1)}",
        f"tmp1[tmp2] = {checked('sub', 'tmp1[tmp2]', 'v')}",
    ]
    assert count == 2


def test_compound_assignment_slice():
    body, _ = rewrite(
        """
    def foo(a, lo, hi):
        a[lo:hi:2] += 1
    """
    )
    assert body.splitlines() == [
        "tmp1 = a",
        "tmp2 = lo",
        "tmp3 = hi",
        "tmp4 = 2",
        f"tmp1[tmp2:tmp3:tmp4] = {checked('add', 'tmp1[tmp2:tmp3:tmp4]', 1)}",
    ]


def test_compound_assignment_open_slice():
    body, _ = rewrite(
        """
    def foo(a, hi):
        a[:hi] %= 3
    """
    )
    assert body.splitlines() == [
        "tmp1 = a",
        "tmp2 = hi",
        f"tmp1[:tmp2] = {checked('rem', 'tmp1[:tmp2]', 3)}",
    ]


def test_compound_assignment_tuple_index():
    body, _ = rewrite(
        """
    def foo(m, i, j):
        m[i, j] /= 2
    """
    )
    assert body.splitlines() == [
        "tmp1 = m",
        "tmp2 = i",
        "tmp3 = j",
        f"tmp1[tmp2, tmp3] = {checked('div', 'tmp1[tmp2, tmp3]', 2)}",
    ]


def test_compound_assignment_nested_block():
    body, _ = rewrite(
        """
    def foo(xs, n):
        for x in xs:
            if x:
                n += x
        return n
    """
    )
    assert f"        n = {checked('add', 'n', 'x')}" in body


@pytest.mark.parametrize("stmt", ["a |= b", "a //= b", "a **= b", "s += 'x'", "xs *= [0]"])
def test_other_compound_assignments_untouched(stmt):
    body, count = rewrite(
        f"""
    def foo(a, b, s, xs):
        {stmt}
    """
    )
    assert body == python_ast.unparse(python_ast.parse(stmt))
    assert count == 0


def test_input_tree_not_modified():
    fn_node = parse_function(
        """
    def foo(a, b):
        a[b] += a * b
        return a / b
    """
    )
    before = python_ast.dump(fn_node, include_attributes=True)
    rewrite_function(fn_node)
    assert python_ast.dump(fn_node, include_attributes=True) == before


def test_rewritten_locations():
    fn_node = parse_function(
        """
    def foo(a, b):

        return a + b
    """
    )
    new_node, _ = rewrite_function(fn_node)
    call = new_node.body[0].value
    for node in python_ast.walk(call):
        if "lineno" in node._attributes:
            assert node.lineno == 4


def test_temporaries_unique_across_rewrites():
    source = """
    def foo(a):
        a.x += 1
    """
    first, _ = rewrite_function(parse_function(source))
    second, _ = rewrite_function(parse_function(source))

    name_1 = first.body[0].targets[0].id
    name_2 = second.body[0].targets[0].id
    assert name_1 != name_2
    assert name_1.startswith(f"{TEMPORARY_PREFIX}_{os.getpid()}_")


def test_temporaries_skip_user_identifiers(monkeypatch):
    monkeypatch.setattr(identifiers, "_tmp_ids", itertools.count(1))
    taken = f"{TEMPORARY_PREFIX}_{os.getpid()}_1"

    fn_node = parse_function(
        f"""
    def foo(a):
        {taken} = 1
        a.x += {taken}
    """
    )
    new_node, _ = rewrite_function(fn_node)
    assert new_node.body[1].targets[0].id == f"{TEMPORARY_PREFIX}_{os.getpid()}_2"


def test_collect_identifiers():
    fn_node = parse_function(
        """
    def foo(a, *args, b=1, **kwargs):
        import os.path as p, sys
        global g
        try:
            pass
        except E as err:
            pass
        class K:
            pass
        match a:
            case [x, *rest] if x:
                pass
            case {"k": v, **others}:
                pass
    """
    )
    names = collect_identifiers(fn_node)
    expected = {"foo", "a", "args", "b", "kwargs", "p", "sys", "g", "E", "err", "K"}
    expected |= {"x", "rest", "v", "others"}
    assert expected <= names


def test_propagation_handler():
    fn_node = parse_function(
        """
    def foo(a):
        "doc"
        return a
    """
    )
    install_propagation_handler(fn_node, SequentialNamer())
    assert python_ast.unparse(fn_node) == textwrap.dedent(
        """\
        def foo(a):
            \"\"\"doc\"\"\"
            try:
                return a
            except __safemath__.Propagate as tmp1:
                return tmp1.err"""
    )


def test_propagation_handler_docstring_only():
    fn_node = parse_function(
        """
    def foo():
        "doc"
    """
    )
    install_propagation_handler(fn_node, SequentialNamer())
    handler = fn_node.body[1]
    assert isinstance(handler, python_ast.Try)
    assert isinstance(handler.body[0], python_ast.Pass)
