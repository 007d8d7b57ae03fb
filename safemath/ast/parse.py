import __future__

import ast as python_ast
import functools
import inspect
import operator
import pickle
import types
from dataclasses import dataclass
from typing import Optional

import asttokens

from safemath.exceptions import (
    CompilerPanic,
    FunctionDeclarationException,
    SourceUnavailable,
    SyntaxException,
)
from safemath import runtime
from safemath.runtime import RUNTIME_NAME

FACTORY_NAME = "__safemath_factory__"

LINE_INFO_FIELDS = ("lineno", "col_offset", "end_lineno", "end_col_offset")

FUTURE_FLAGS = functools.reduce(
    operator.or_,
    (getattr(__future__, name).compiler_flag for name in __future__.all_feature_names),
)


@dataclass
class FunctionSource:
    """
    A parsed function definition together with where it came from.

    ``node`` carries absolute line numbers within ``path``.
    """

    node: python_ast.AST
    path: str
    full_source_code: str
    class_name: Optional[str] = None


def _deepcopy_ast(ast_node: python_ast.AST):
    # pickle roundtrip is faster than copy.deepcopy() here.
    return pickle.loads(pickle.dumps(ast_node))


class AnnotatingVisitor(python_ast.NodeVisitor):
    """
    Decorate nodes with the information diagnostics are rendered from.
    """

    _source_code: str
    _functions: list[str]

    def __init__(self, source_code: str, tokens: asttokens.ASTTokens, path: Optional[str]):
        self._source_code = source_code
        self._tokens = tokens
        self._path = path
        self._functions = []

    def generic_visit(self, node):
        if hasattr(node, "lineno"):
            node.full_source_code = self._source_code
            node.source_path = self._path
            node.function_name = self._functions[-1] if self._functions else None
            node.node_source_code = self._tokens.get_text(node)

        super().generic_visit(node)

    def _visit_scope(self, node):
        self._functions.append(node.name)
        try:
            self.generic_visit(node)
        finally:
            self._functions.pop()

    def visit_FunctionDef(self, node):
        self._visit_scope(node)

    def visit_AsyncFunctionDef(self, node):
        self._visit_scope(node)


def annotate_python_ast(
    parsed_ast: python_ast.AST,
    source_code: str,
    tokens: asttokens.ASTTokens,
    path: Optional[str] = None,
) -> python_ast.AST:
    """
    Annotate a Python AST in preparation for validation and rewriting.

    Parameters
    ----------
    parsed_ast : AST
        The AST to be annotated. Line numbers must already be absolute
        within ``source_code``.
    source_code : str
        The full text of the file the AST was parsed from.
    tokens : ASTTokens
        Token information marked onto ``parsed_ast``.
    path : str, optional
        The path of the source file.

    Returns
    -------
        The annotated AST.
    """
    visitor = AnnotatingVisitor(source_code, tokens, path)
    visitor.visit(parsed_ast)
    return parsed_ast


def _parse(source: str, path: str) -> python_ast.Module:
    try:
        return python_ast.parse(source, filename=path)
    except SyntaxError as e:
        offset = e.offset
        if offset is not None:
            # SyntaxError offset is 1-based, not 0-based
            offset -= 1
        raise SyntaxException(str(e), source, e.lineno, offset) from None


def parse_module(source_code: str, path: str = "<unknown>") -> python_ast.Module:
    """
    Parse and annotate a whole python source file.
    """
    py_ast = _parse(source_code, path)
    tokens = asttokens.ASTTokens(source_code, tree=py_ast)
    return annotate_python_ast(py_ast, source_code, tokens, path)


def _enclosing_class_name(fn) -> Optional[str]:
    parts = fn.__qualname__.split(".")
    if len(parts) >= 2 and parts[-2] != "<locals>":
        return parts[-2]
    return None


def parse_function(fn) -> FunctionSource:
    """
    Retrieve and parse the source of ``fn``.

    Indented definitions (methods, functions nested in other functions) are
    parsed inside an ``if 1:`` block so that their original columns are
    kept.
    """
    try:
        path = inspect.getsourcefile(fn) or fn.__code__.co_filename
        file_lines, _ = inspect.findsource(fn)
        lines, first_lineno = inspect.getsourcelines(fn)
    except (OSError, TypeError) as e:
        raise SourceUnavailable(f"cannot retrieve the source of `{fn.__qualname__}`: {e}") from e

    snippet = "".join(lines)
    full_source_code = "".join(file_lines)

    if snippet[:1] in (" ", "\t"):
        snippet = "if 1:\n" + snippet
        py_ast = _parse(snippet, path)
        fn_node = py_ast.body[0].body[0]
        line_offset = first_lineno - 2
    else:
        py_ast = _parse(snippet, path)
        fn_node = py_ast.body[0]
        line_offset = first_lineno - 1

    # tokens are marked before line numbers move, they are position-based
    tokens = asttokens.ASTTokens(snippet, tree=py_ast)
    python_ast.increment_lineno(py_ast, line_offset)

    if not isinstance(fn_node, (python_ast.FunctionDef, python_ast.AsyncFunctionDef)):
        raise FunctionDeclarationException(f"`{fn.__qualname__}` is not defined by a def statement")
    if fn_node.name != fn.__name__:
        raise FunctionDeclarationException(
            f"source of `{fn.__qualname__}` resolved to a definition of `{fn_node.name}`"
        )

    annotate_python_ast(fn_node, full_source_code, tokens, path)

    return FunctionSource(
        node=fn_node,
        path=path,
        full_source_code=full_source_code,
        class_name=_enclosing_class_name(fn),
    )


def relocate(node: python_ast.AST, ref: python_ast.AST) -> python_ast.AST:
    """
    Give ``node`` and all of its descendants the location of ``ref``.
    """
    for n in python_ast.walk(node):
        if "lineno" in n._attributes:
            for field in LINE_INFO_FIELDS:
                setattr(n, field, getattr(ref, field, None))
    return node


def _find_code(code: types.CodeType, name: str) -> types.CodeType:
    for const in code.co_consts:
        if isinstance(const, types.CodeType) and const.co_name == name:
            return const
    raise CompilerPanic(f"no code object named `{name}` in `{code.co_name}`")


def compile_function(fn, source: FunctionSource, fn_node: python_ast.AST):
    """
    Compile a rewritten definition of ``fn`` and rebuild it as a function
    object sharing ``fn``'s globals, closure cells, defaults and metadata.

    The definition is compiled inside a factory function whose parameters
    are ``fn``'s free variables plus the runtime namespace, so that every
    free variable resolves to a closure cell. Methods are additionally
    compiled inside a class of the original name, which keeps private name
    mangling intact.
    """
    freevars = fn.__code__.co_freevars
    params = ", ".join((*freevars, RUNTIME_NAME))

    factory = python_ast.parse(f"def {FACTORY_NAME}({params}):\n    return {fn_node.name}\n")
    factory = relocate(factory.body[0], fn_node)
    factory.body.insert(0, fn_node)

    outer = factory
    if source.class_name is not None:
        outer = python_ast.parse(f"class {source.class_name}:\n    pass\n").body[0]
        outer = relocate(outer, fn_node)
        outer.body = [factory]

    module = python_ast.Module(body=[outer], type_ignores=[])
    python_ast.fix_missing_locations(module)

    try:
        module_code = compile(
            module, source.path, "exec", flags=fn.__code__.co_flags & FUTURE_FLAGS, dont_inherit=True
        )
    except SyntaxError as e:
        raise CompilerPanic(f"rewritten `{fn.__qualname__}` does not compile: {e}") from e

    code = module_code
    if source.class_name is not None:
        code = _find_code(code, source.class_name)
    code = _find_code(_find_code(code, FACTORY_NAME), fn_node.name)

    cells = dict(zip(freevars, fn.__closure__ or ()))
    cells[RUNTIME_NAME] = types.CellType(runtime)
    closure = tuple(cells[name] for name in code.co_freevars)

    new_fn = types.FunctionType(code, fn.__globals__, fn.__name__, fn.__defaults__, closure)
    new_fn.__kwdefaults__ = fn.__kwdefaults__
    functools.update_wrapper(new_fn, fn)
    return new_fn
