"""
Rewriting of arithmetic into checked operations.

Every ``+ - * / %`` in a function body becomes a call into the runtime
namespace whose result is unwrapped by ``propagate``::

    a + b * c
    # becomes
    __safemath__.propagate(
        __safemath__.checked_add(
            a, __safemath__.propagate(__safemath__.checked_mul(b, c))
        )
    )

Compound assignments are expanded so that the location they update is
evaluated only once.
"""
import ast as python_ast
import copy
from typing import List, Optional, Tuple

from safemath.ast.identifiers import TemporaryNamer, collect_identifiers
from safemath.ast.parse import _deepcopy_ast, relocate
from safemath.exceptions import UnexpectedNodeType
from safemath.ops import OperationKind
from safemath.runtime import RUNTIME_NAME

# operands which make a binary operation text or sequence manipulation
NON_NUMERIC_NODES = (
    python_ast.JoinedStr,
    python_ast.List,
    python_ast.Tuple,
    python_ast.Set,
    python_ast.Dict,
    python_ast.ListComp,
    python_ast.SetComp,
    python_ast.DictComp,
    python_ast.GeneratorExp,
)


def is_non_numeric(node: python_ast.AST) -> bool:
    """
    Check if ``node`` is statically known not to be a number.
    """
    if isinstance(node, python_ast.Constant):
        return isinstance(node.value, (str, bytes))
    if isinstance(node, NON_NUMERIC_NODES):
        return True
    if isinstance(node, python_ast.BinOp):
        return is_non_numeric(node.left) or is_non_numeric(node.right)
    return False


def _located(node: python_ast.AST, ref: python_ast.AST) -> python_ast.AST:
    return python_ast.copy_location(node, ref)


def _name(id_: str, ctx: python_ast.expr_context, ref: python_ast.AST) -> python_ast.Name:
    return _located(python_ast.Name(id=id_, ctx=ctx), ref)


def _runtime_call(func: str, args: List[python_ast.expr], ref: python_ast.AST) -> python_ast.Call:
    runtime = _name(RUNTIME_NAME, python_ast.Load(), ref)
    attr = _located(python_ast.Attribute(value=runtime, attr=func, ctx=python_ast.Load()), ref)
    return _located(python_ast.Call(func=attr, args=args, keywords=[]), ref)


def checked_expression(kind: OperationKind, left, right, ref) -> python_ast.Call:
    """
    Build ``propagate(checked_<kind>(left, right))`` located at ``ref``.
    """
    inner = _runtime_call(kind.method_name, [left, right], ref)
    return _runtime_call("propagate", [inner], ref)


class ArithmeticRewriter(python_ast.NodeTransformer):
    """
    Replace arithmetic in the statements of one function body.

    Nested function, lambda and class bodies are separate scopes and are
    left alone. The parts of them evaluated in the enclosing scope
    (decorators, default values, bases) are rewritten.

    Attributes
    ----------
    count : int
        Number of operations rewritten so far.
    """

    def __init__(self, namer: TemporaryNamer):
        self.namer = namer
        self.count = 0

    def visit_body(self, statements: List[python_ast.stmt]) -> List[python_ast.stmt]:
        new_statements: List[python_ast.stmt] = []
        for stmt in statements:
            result = self.visit(stmt)
            if isinstance(result, list):
                new_statements.extend(result)
            elif result is not None:
                new_statements.append(result)
        return new_statements

    def visit_BinOp(self, node):
        # children first so that the innermost operation is rewritten first
        self.generic_visit(node)

        kind = OperationKind.from_ast(node.op)
        if kind is None or is_non_numeric(node.left) or is_non_numeric(node.right):
            return node

        self.count += 1
        return checked_expression(kind, node.left, node.right, node)

    def _visit_list(self, nodes):
        return [self.visit(n) if n is not None else None for n in nodes]

    def _visit_arguments(self, args: python_ast.arguments):
        args.defaults = self._visit_list(args.defaults)
        args.kw_defaults = self._visit_list(args.kw_defaults)

    def visit_FunctionDef(self, node):
        node.decorator_list = self._visit_list(node.decorator_list)
        self._visit_arguments(node.args)
        return node

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Lambda(self, node):
        self._visit_arguments(node.args)
        return node

    def visit_ClassDef(self, node):
        node.decorator_list = self._visit_list(node.decorator_list)
        node.bases = self._visit_list(node.bases)
        node.keywords = self._visit_list(node.keywords)
        return node

    def visit_match_case(self, node):
        # patterns are not expressions, `case 1 + 2j` must stay as written
        if node.guard is not None:
            node.guard = self.visit(node.guard)
        node.body = self.visit_body(node.body)
        return node

    def visit_AugAssign(self, node):
        kind = OperationKind.from_ast(node.op)
        if kind is None or is_non_numeric(node.value):
            return self.generic_visit(node)

        statements: List[python_ast.stmt] = []
        load, store = self._bind_location(node.target, statements)
        value = self.visit(node.value)

        self.count += 1
        assign = python_ast.Assign(
            targets=[store], value=checked_expression(kind, load, value, node)
        )
        statements.append(_located(assign, node))
        return statements

    def _bind(self, expr: python_ast.expr, statements: List[python_ast.stmt]) -> str:
        # evaluate `expr` once, into a fresh temporary
        tmp = self.namer.fresh()
        assign = python_ast.Assign(targets=[_name(tmp, python_ast.Store(), expr)], value=expr)
        statements.append(_located(assign, expr))
        return tmp

    def _bind_location(
        self, target: python_ast.expr, statements: List[python_ast.stmt]
    ) -> Tuple[python_ast.expr, python_ast.expr]:
        """
        Bind the sub-expressions locating ``target`` to temporaries.

        Returns
        -------
        Tuple
            A load and a store expression for the location, both built on
            the temporaries.
        """
        if isinstance(target, python_ast.Name):
            return _name(target.id, python_ast.Load(), target), target

        if isinstance(target, python_ast.Attribute):
            obj = self._bind(self.visit(target.value), statements)
            load = python_ast.Attribute(
                value=_name(obj, python_ast.Load(), target.value),
                attr=target.attr,
                ctx=python_ast.Load(),
            )
            store = python_ast.Attribute(
                value=_name(obj, python_ast.Load(), target.value),
                attr=target.attr,
                ctx=python_ast.Store(),
            )
            return _located(load, target), _located(store, target)

        if isinstance(target, python_ast.Subscript):
            obj = self._bind(self.visit(target.value), statements)
            index = self._bind_index(target.slice, statements)
            load = python_ast.Subscript(
                value=_name(obj, python_ast.Load(), target.value),
                slice=index,
                ctx=python_ast.Load(),
            )
            store = python_ast.Subscript(
                value=_name(obj, python_ast.Load(), target.value),
                slice=copy.deepcopy(index),
                ctx=python_ast.Store(),
            )
            return _located(load, target), _located(store, target)

        raise UnexpectedNodeType(
            f"cannot assign to {type(target).__name__} in a compound assignment", target
        )

    def _bind_index(
        self, index: python_ast.expr, statements: List[python_ast.stmt]
    ) -> python_ast.expr:
        if isinstance(index, python_ast.Slice):
            parts = {}
            for field in ("lower", "upper", "step"):
                part = getattr(index, field)
                if part is not None:
                    tmp = self._bind(self.visit(part), statements)
                    part = _name(tmp, python_ast.Load(), part)
                parts[field] = part
            return _located(python_ast.Slice(**parts), index)

        if isinstance(index, python_ast.Tuple):
            elts = [self._bind_index(e, statements) for e in index.elts]
            return _located(python_ast.Tuple(elts=elts, ctx=python_ast.Load()), index)

        if isinstance(index, python_ast.Starred):
            tmp = self._bind(self.visit(index.value), statements)
            value = _name(tmp, python_ast.Load(), index.value)
            return _located(python_ast.Starred(value=value, ctx=python_ast.Load()), index)

        tmp = self._bind(self.visit(index), statements)
        return _name(tmp, python_ast.Load(), index)


def rewrite_function(fn_node, namer: Optional[TemporaryNamer] = None):
    """
    Rewrite the arithmetic in the body of a function definition.

    The given node is not modified.

    Arguments
    ---------
    fn_node : FunctionDef | AsyncFunctionDef
        The function definition to rewrite.
    namer : TemporaryNamer, optional
        Source of temporary names. By default, a namer reserving every
        identifier used by ``fn_node`` is created.

    Returns
    -------
    Tuple
        The rewritten copy of ``fn_node``, and the number of operations
        rewritten.
    """
    if not isinstance(fn_node, (python_ast.FunctionDef, python_ast.AsyncFunctionDef)):
        raise UnexpectedNodeType(f"expected a function definition, got {type(fn_node).__name__}")

    if namer is None:
        namer = TemporaryNamer(collect_identifiers(fn_node))

    new_node = _deepcopy_ast(fn_node)
    rewriter = ArithmeticRewriter(namer)
    new_node.body = rewriter.visit_body(new_node.body)
    return new_node, rewriter.count


def _is_docstring(stmt: python_ast.stmt) -> bool:
    return (
        isinstance(stmt, python_ast.Expr)
        and isinstance(stmt.value, python_ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def install_propagation_handler(fn_node, namer: TemporaryNamer):
    """
    Wrap the body of ``fn_node`` so that a propagated failure becomes the
    function's return value. The docstring, if any, stays in front.

    ``fn_node`` is modified in place and returned.
    """
    body = list(fn_node.body)
    docstring = []
    if body and _is_docstring(body[0]):
        docstring, body = body[:1], body[1:]
    if not body:
        body = [_located(python_ast.Pass(), fn_node)]

    err = namer.fresh()
    handler = python_ast.parse(
        f"try:\n    pass\nexcept {RUNTIME_NAME}.Propagate as {err}:\n    return {err}.err\n"
    ).body[0]
    handler = relocate(handler, fn_node)
    handler.body = body

    fn_node.body = docstring + [handler]
    return fn_node
