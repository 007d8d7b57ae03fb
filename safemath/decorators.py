import ast as python_ast
import types

from safemath.ast.identifiers import TemporaryNamer, collect_identifiers
from safemath.ast.parse import compile_function, parse_function
from safemath.ast.rewriter import install_propagation_handler, rewrite_function
from safemath.ast.validation import validate_function
from safemath.exceptions import FunctionDeclarationException, tag_exceptions
from safemath.warnings import DecoratorOrderWarning, NoArithmeticWarning, safemath_warn

DECORATOR_NAME = "safe_math"


def is_safe_math_decorator(node) -> bool:
    if isinstance(node, python_ast.Name):
        return node.id == DECORATOR_NAME
    if isinstance(node, python_ast.Attribute):
        return node.attr == DECORATOR_NAME
    return False


def check_decorator_order(fn_node) -> None:
    # decorators listed below @safe_math have already been applied to the
    # function object, and are lost when it is rebuilt from source
    if fn_node.decorator_list and not is_safe_math_decorator(fn_node.decorator_list[-1]):
        safemath_warn(
            DecoratorOrderWarning(
                f"decorators applied to `{fn_node.name}` before @{DECORATOR_NAME} are dropped, "
                f"@{DECORATOR_NAME} should be the innermost decorator",
                fn_node.decorator_list[-1],
            )
        )


def expand_function_node(fn_node, warn_if_unchanged: bool = True):
    """
    Validate and rewrite a parsed function definition.

    Arguments
    ---------
    fn_node : FunctionDef | AsyncFunctionDef
        Annotated definition, as produced by ``safemath.ast.parse``.
    warn_if_unchanged : bool, optional
        Emit a ``NoArithmeticWarning`` when nothing was rewritten.

    Returns
    -------
        The rewritten definition, without decorators and with the
        propagation handler installed.
    """
    validate_function(fn_node)

    namer = TemporaryNamer(collect_identifiers(fn_node))
    new_node, count = rewrite_function(fn_node, namer)
    if count == 0 and warn_if_unchanged:
        safemath_warn(
            NoArithmeticWarning(f"`{fn_node.name}` contains no arithmetic to rewrite", fn_node)
        )

    new_node.decorator_list = []
    return install_propagation_handler(new_node, namer)


def safe_math(fn):
    """
    Rewrite every ``+ - * / %`` in the body of ``fn`` into checked arithmetic.

    The decorated function must declare an outcome return type. When it
    runs, the first failing operation ends it and its ``Err`` is returned.

    Example
    -------
    ::

        @safe_math
        def total(a: uint8, b: uint8) -> Outcome[uint8]:
            return Ok(a + b)

        total(uint8(255), uint8(1))  # Err(kind=ErrorKind.OVERFLOW)
    """
    if not isinstance(fn, types.FunctionType):
        raise FunctionDeclarationException(
            f"@{DECORATOR_NAME} can only be applied to functions, not {type(fn).__name__}"
        )
    if fn.__name__ == "<lambda>":
        raise FunctionDeclarationException(f"@{DECORATOR_NAME} cannot be applied to a lambda")
    if hasattr(fn, "__safemath_source__"):
        raise FunctionDeclarationException(f"`{fn.__qualname__}` has already been rewritten")
    if hasattr(fn, "__wrapped__"):
        raise FunctionDeclarationException(
            f"`{fn.__qualname__}` is wrapped by another decorator, "
            f"@{DECORATOR_NAME} should be the innermost decorator"
        )

    source = parse_function(fn)
    check_decorator_order(source.node)
    new_node = expand_function_node(source.node)

    with tag_exceptions(source.node):
        new_fn = compile_function(fn, source, new_node)

    new_fn.__safemath_source__ = python_ast.unparse(new_node)
    return new_fn
