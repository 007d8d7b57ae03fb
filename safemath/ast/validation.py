import ast as python_ast
from typing import Iterator

from safemath.exceptions import (
    ExceptionList,
    FunctionDeclarationException,
    NamespaceCollision,
    ReturnTypeException,
)
from safemath.runtime import RUNTIME_NAME

SCOPE_NODES = (
    python_ast.FunctionDef,
    python_ast.AsyncFunctionDef,
    python_ast.Lambda,
    python_ast.ClassDef,
)


def _head_name(node) -> str | None:
    if isinstance(node, python_ast.Name):
        return node.id
    if isinstance(node, python_ast.Attribute):
        return node.attr
    return None


def _is_ok(node) -> bool:
    if isinstance(node, python_ast.Subscript):
        node = node.value
    return _head_name(node) == "Ok"


def _is_err(node) -> bool:
    return _head_name(node) == "Err"


def _is_ok_err_pair(members) -> bool:
    return (
        any(_is_ok(m) for m in members)
        and any(_is_err(m) for m in members)
        and all(_is_ok(m) or _is_err(m) for m in members)
    )


def _flatten_union(node) -> list:
    if isinstance(node, python_ast.BinOp) and isinstance(node.op, python_ast.BitOr):
        return _flatten_union(node.left) + _flatten_union(node.right)
    return [node]


def is_outcome_annotation(node) -> bool:
    """
    Check whether a return annotation spells an outcome type.

    Accepted forms are ``Outcome``, ``Outcome[T]`` (optionally qualified,
    e.g. ``safemath.Outcome[T]``), ``Ok[T] | Err``, ``Union[Ok[T], Err]``
    and string annotations of any of these.
    """
    if node is None:
        return False

    if isinstance(node, python_ast.Constant) and isinstance(node.value, str):
        try:
            parsed = python_ast.parse(node.value.strip(), mode="eval")
        except SyntaxError:
            return False
        return is_outcome_annotation(parsed.body)

    if _head_name(node) == "Outcome":
        return True

    if isinstance(node, python_ast.Subscript):
        head = _head_name(node.value)
        if head == "Outcome":
            return True
        if head == "Union":
            members = node.slice.elts if isinstance(node.slice, python_ast.Tuple) else [node.slice]
            return _is_ok_err_pair(members)
        return False

    if isinstance(node, python_ast.BinOp) and isinstance(node.op, python_ast.BitOr):
        return _is_ok_err_pair(_flatten_union(node))

    return False


def _scope_entry_fields(node) -> list:
    # the parts of a nested scope that run in the enclosing scope
    fields = list(node.decorator_list) if hasattr(node, "decorator_list") else []
    if isinstance(node, python_ast.ClassDef):
        fields += node.bases + node.keywords
    else:
        fields += node.args.defaults + [d for d in node.args.kw_defaults if d is not None]
    return fields


def iter_own_scope(node: python_ast.AST) -> Iterator[python_ast.AST]:
    """
    Yield every node below ``node`` that executes in ``node``'s own scope.

    Nested function, lambda and class bodies are not entered, but their
    decorators, default values and bases are.
    """
    todo = list(python_ast.iter_child_nodes(node))
    while todo:
        child = todo.pop()
        yield child
        if isinstance(child, SCOPE_NODES):
            todo.extend(_scope_entry_fields(child))
        else:
            todo.extend(python_ast.iter_child_nodes(child))


def _uses_runtime_name(node) -> bool:
    if isinstance(node, python_ast.Name):
        return node.id == RUNTIME_NAME
    if isinstance(node, python_ast.arg):
        return node.arg == RUNTIME_NAME
    if isinstance(node, (python_ast.FunctionDef, python_ast.AsyncFunctionDef, python_ast.ClassDef)):
        return node.name == RUNTIME_NAME
    if isinstance(node, python_ast.alias):
        return (node.asname or node.name) == RUNTIME_NAME
    if isinstance(node, (python_ast.Global, python_ast.Nonlocal)):
        return RUNTIME_NAME in node.names
    return False


def validate_function(fn_node) -> None:
    """
    Run the static checks a function must pass before it is rewritten.

    All problems are collected and raised together.

    Raises
    ------
    ReturnTypeException
        The return annotation is missing or is not an outcome type.
    FunctionDeclarationException
        The function is a generator.
    NamespaceCollision
        The function uses the name reserved for the runtime namespace.
    """
    errors = ExceptionList()

    if fn_node.returns is None:
        errors.append(
            ReturnTypeException(
                f"`{fn_node.name}` must declare an outcome return type",
                fn_node,
                hint="annotate it as `-> Outcome[...]`",
            )
        )
    elif not is_outcome_annotation(fn_node.returns):
        errors.append(
            ReturnTypeException(
                f"`{fn_node.name}` returns `{python_ast.unparse(fn_node.returns)}`, "
                "which is not an outcome type",
                fn_node.returns,
                hint="annotate it as `-> Outcome[...]`",
            )
        )

    for node in iter_own_scope(fn_node):
        if isinstance(node, (python_ast.Yield, python_ast.YieldFrom)):
            errors.append(
                FunctionDeclarationException(
                    f"generator `{fn_node.name}` cannot be rewritten", node
                )
            )
            break

    for node in python_ast.walk(fn_node):
        if _uses_runtime_name(node):
            errors.append(
                NamespaceCollision(f"`{RUNTIME_NAME}` is reserved for the rewritten code", node)
            )
            break

    errors.raise_if_not_empty()
