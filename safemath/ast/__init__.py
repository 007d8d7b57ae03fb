from safemath.ast.identifiers import TemporaryNamer, collect_identifiers
from safemath.ast.parse import compile_function, parse_function, parse_module
from safemath.ast.rewriter import ArithmeticRewriter, install_propagation_handler, rewrite_function
from safemath.ast.validation import is_outcome_annotation, validate_function
