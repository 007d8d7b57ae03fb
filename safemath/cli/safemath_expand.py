#!/usr/bin/env python3
import argparse
import ast as python_ast
import sys
from pathlib import Path
from typing import Iterable, Optional

import safemath
from safemath.ast.parse import parse_module
from safemath.decorators import check_decorator_order, expand_function_node, is_safe_math_decorator
from safemath.exceptions import ExceptionList, SafeMathException
from safemath.settings import SAFEMATH_TRACEBACK_LIMIT
from safemath.warnings import warnings_filter

FUNCTION_NODES = (python_ast.FunctionDef, python_ast.AsyncFunctionDef)


def _parse_cli_args():
    return _parse_args(sys.argv[1:])


def _parse_args(argv):
    parser = argparse.ArgumentParser(
        description="Show the checked arithmetic expansion of @safe_math functions",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("input_files", help="Python source files to expand", nargs="+")
    parser.add_argument("--version", action="version", version=safemath.__version__)
    parser.add_argument(
        "-f",
        "--function",
        help="Only expand functions with this name (may be repeated)",
        action="append",
        dest="functions",
    )
    parser.add_argument(
        "--check",
        help="Validate the functions without printing their expansion",
        action="store_true",
    )
    parser.add_argument(
        "--traceback-limit",
        help="Set the traceback limit for error messages reported by safemath",
        type=int,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        help="Turn on verbose output. "
        "Currently an alias for --traceback-limit but "
        "may add more information in the future",
        action="store_true",
    )
    parser.add_argument(
        "--warnings-control",
        help="Turn warnings into errors, or silence them",
        choices=["error", "none"],
    )
    parser.add_argument("-o", help="Set the output path", dest="output_path")

    args = parser.parse_args(argv)

    if args.traceback_limit is not None:
        sys.tracebacklimit = args.traceback_limit
    elif SAFEMATH_TRACEBACK_LIMIT is not None:
        sys.tracebacklimit = SAFEMATH_TRACEBACK_LIMIT
    elif args.verbose:
        sys.tracebacklimit = 1000
    else:
        # a default of zero keeps error printouts to the location in the
        # user's source file
        sys.tracebacklimit = 0

    with warnings_filter(args.warnings_control):
        expanded = expand_files(args.input_files, args.functions)

    if args.verbose:
        count = sum(len(v) for v in expanded.values())
        print(f"expanded {count} function(s) in {len(expanded)} file(s)", file=sys.stderr)

    if args.check:
        return

    if args.output_path:
        with open(args.output_path, "w") as f:
            _cli_helper(f, expanded)
    else:
        _cli_helper(sys.stdout, expanded)


def _cli_helper(f, expanded):
    for path, functions in expanded.items():
        for fn_node, new_node in functions:
            print(f"# {path}:{fn_node.lineno} {fn_node.name}", file=f)
            print(python_ast.unparse(new_node), file=f)
            print(file=f)


def find_safe_math_functions(module: python_ast.Module) -> list:
    """
    Return every function definition in ``module`` decorated with
    ``@safe_math``, in source order.
    """
    found = [
        node
        for node in python_ast.walk(module)
        if isinstance(node, FUNCTION_NODES)
        and any(is_safe_math_decorator(d) for d in node.decorator_list)
    ]
    return sorted(found, key=lambda node: (node.lineno, node.col_offset))


def expand_source(
    source_code: str, path: str = "<unknown>", functions: Optional[Iterable[str]] = None
) -> list:
    """
    Expand the ``@safe_math`` functions of one python source file.

    Arguments
    ---------
    source_code : str
        The source file contents.
    path : str, optional
        The path reported in diagnostics.
    functions : Iterable[str], optional
        Restrict the expansion to functions with these names.

    Returns
    -------
    list
        ``(original, rewritten)`` function definition pairs.
    """
    module = parse_module(source_code, path)
    wanted = set(functions) if functions else None

    errors = ExceptionList()
    ret = []
    for fn_node in find_safe_math_functions(module):
        if wanted is not None and fn_node.name not in wanted:
            continue
        try:
            check_decorator_order(fn_node)
            ret.append((fn_node, expand_function_node(fn_node)))
        except SafeMathException as e:
            errors.append(e)

    errors.raise_if_not_empty()
    return ret


def exc_handler(path: Path, exception: Exception) -> None:
    print(f"Error expanding: {path}", file=sys.stderr)
    raise exception


def expand_files(input_files: list[str], functions: Optional[list[str]] = None) -> dict:
    ret: dict[Path, list] = {}

    for file_name in input_files:
        file_path = Path(file_name)
        source_code = file_path.read_text()
        try:
            ret[file_path] = expand_source(source_code, str(file_path), functions)
        except SafeMathException as exc:
            exc_handler(file_path, exc)

    return ret


if __name__ == "__main__":
    _parse_args(sys.argv[1:])
