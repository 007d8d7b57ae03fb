import ast as python_ast
import itertools
import os
import threading
from typing import Iterable, Set

TEMPORARY_PREFIX = "_safemath_tmp"

_tmp_ids = itertools.count(1)
_tmp_lock = threading.Lock()


def _generate_tmp_id() -> int:
    # monotonic for the lifetime of the process
    with _tmp_lock:
        return next(_tmp_ids)


def collect_identifiers(node: python_ast.AST) -> Set[str]:
    """
    Return every identifier bound or referenced anywhere below ``node``.
    """
    names: Set[str] = set()
    for n in python_ast.walk(node):
        if isinstance(n, python_ast.Name):
            names.add(n.id)
        elif isinstance(n, python_ast.arg):
            names.add(n.arg)
        elif isinstance(n, (python_ast.FunctionDef, python_ast.AsyncFunctionDef)):
            names.add(n.name)
        elif isinstance(n, python_ast.ClassDef):
            names.add(n.name)
        elif isinstance(n, python_ast.alias):
            names.add(n.asname or n.name.split(".")[0])
        elif isinstance(n, (python_ast.Global, python_ast.Nonlocal)):
            names.update(n.names)
        elif isinstance(n, python_ast.ExceptHandler) and n.name:
            names.add(n.name)
        elif isinstance(n, (python_ast.MatchAs, python_ast.MatchStar)) and n.name:
            names.add(n.name)
        elif isinstance(n, python_ast.MatchMapping) and n.rest:
            names.add(n.rest)
    return names


class TemporaryNamer:
    """
    Hands out synthetic identifiers for one rewritten unit.

    Names combine the process id with a process-wide counter, and any name
    already used by the unit is skipped, so temporaries never collide with
    user identifiers or with each other.
    """

    def __init__(self, reserved: Iterable[str] = ()):
        self._reserved = set(reserved)

    def fresh(self) -> str:
        while True:
            name = f"{TEMPORARY_PREFIX}_{os.getpid()}_{_generate_tmp_id()}"
            if name not in self._reserved:
                self._reserved.add(name)
                return name
