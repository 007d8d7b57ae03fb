import contextlib
import copy
import textwrap
import types

from safemath.settings import SAFEMATH_ERROR_CONTEXT_LINES, SAFEMATH_ERROR_LINE_NUMBERS


class ExceptionList(list):
    """
    List subclass for storing exceptions.
    To deliver multiple diagnostics to the user at once, append each
    raised Exception to this list and call raise_if_not_empty once the task
    is completed.
    """

    def raise_if_not_empty(self):
        if len(self) == 1:
            raise self[0]
        elif len(self) > 1:
            err_msg = ["Rewriting failed with the following errors:"]
            err_msg += [f"{type(i).__name__}: {i}" for i in self]
            raise SafeMathException("\n\n".join(err_msg))


class _BaseSafeMathException(Exception):
    """
    Base safemath exception class.

    This exception is not raised directly. Other exceptions inherit it in
    order to display source annotations in the error string.
    """

    def __init__(self, message="Error Message not found.", *items, hint=None):
        """
        Exception initializer.

        Arguments
        ---------
        message : str
            Error message to display with the exception.
        *items : ast.AST | Tuple[str, ast.AST], optional
            Annotated python ast node(s), or tuple of (description, node)
            indicating where the exception occurred. Source annotations are
            generated in the order the nodes are given.
        """
        self._message = message
        self._hint = hint

        self.lineno = None
        self.col_offset = None
        self.annotations = None

        if len(items) == 1 and isinstance(items[0], tuple) and isinstance(items[0][0], int):
            self.lineno, self.col_offset = items[0][:2]
        else:
            # strip out None sources so that None can be passed as a valid
            # annotation (in case it is only available optionally)
            self.annotations = [k for k in items if k is not None]

    def with_annotation(self, *annotations):
        """
        Creates a copy of this exception with a modified source annotation.

        Arguments
        ---------
        *annotations : ast.AST | Tuple[str, ast.AST]
            AST node(s), or tuple of (description, node) to use in the annotation.

        Returns
        -------
        A copy of the exception with the new node offset(s) applied.
        """
        exc = copy.copy(self)
        exc.annotations = annotations
        return exc

    @property
    def hint(self):
        if callable(self._hint):
            return self._hint()
        return self._hint

    @property
    def message(self):
        msg = self._message
        if self.hint:
            msg += f"\n\n  (hint: {self.hint})"
        return msg

    def format_annotation(self, value):
        from safemath.utils import annotate_source_code

        node = value[1] if isinstance(value, tuple) else value
        node_msg = ""

        try:
            source_annotation = annotate_source_code(
                # add trailing space because EOF exceptions point one char beyond the length
                f"{node.full_source_code} ",
                node.lineno,
                node.col_offset,
                context_lines=SAFEMATH_ERROR_CONTEXT_LINES,
                line_numbers=SAFEMATH_ERROR_LINE_NUMBERS,
            )
        except Exception:
            # nodes which were never annotated carry no source
            return None

        path = getattr(node, "source_path", None)
        if path is not None:
            node_msg = f'{node_msg}file "{path}:{node.lineno}", '

        fn_name = getattr(node, "function_name", None)
        if fn_name is not None:
            node_msg = f'{node_msg}function "{fn_name}", '

        col_offset_str = "" if node.col_offset is None else str(node.col_offset)
        node_msg = f"{node_msg}line {node.lineno}:{col_offset_str} \n{source_annotation}\n"

        if isinstance(value, tuple):
            # if annotation includes a message, apply it at the start and further indent
            node_msg = textwrap.indent(node_msg, "  ")
            node_msg = f"{value[0]}\n{node_msg}"

        node_msg = textwrap.indent(node_msg, "  ")
        return node_msg

    def __str__(self):
        if not self.annotations:
            if self.lineno is not None and self.col_offset is not None:
                return f"line {self.lineno}:{self.col_offset} {self.message}"
            else:
                return self.message

        annotation_list = [self.format_annotation(value) for value in self.annotations]
        annotation_list = [s for s in annotation_list if s is not None]
        if not annotation_list:
            return self.message

        annotation_msg = "\n".join(annotation_list)
        return f"{self.message}\n\n{annotation_msg}"


class SafeMathException(_BaseSafeMathException):
    pass


class SyntaxException(SafeMathException):

    """Invalid syntax."""

    def __init__(self, message, source_code, lineno, col_offset):
        item = types.SimpleNamespace()
        item.lineno = lineno
        item.col_offset = col_offset
        item.full_source_code = source_code
        super().__init__(message, item)


class SourceUnavailable(SafeMathException):
    """The source code of a function cannot be retrieved."""


class FunctionDeclarationException(SafeMathException):
    """Invalid function declaration for rewriting."""


class ReturnTypeException(FunctionDeclarationException):
    """A rewritten function does not declare an outcome return type."""


class NamespaceCollision(SafeMathException):
    """A user identifier collides with a name reserved by the rewriter."""


class DerivationException(SafeMathException):
    """Malformed request to derive checked arithmetic for a type."""


class EmptyDerivationRequest(DerivationException):
    """No operation was requested."""


class UnknownOperation(DerivationException):
    """An operation identifier outside the known operation set."""


class DuplicateOperation(DerivationException):
    """The same operation was requested more than once."""


class MissingPrimitive(DerivationException):
    """The type lacks the operator or checked primitive a requested operation delegates to."""


class CheckedArithmeticError(ArithmeticError):
    """
    Raised when the failure of a checked operation is unwrapped.

    Attributes
    ----------
    kind : ErrorKind
        The reason the operation failed.
    """

    def __init__(self, kind):
        super().__init__(str(kind))
        self.kind = kind


class SafeMathInternalException(_BaseSafeMathException):
    """
    Base safemath internal exception class.

    This exception is not raised directly, it is subclassed by other internal
    exceptions.

    Internal exceptions are raised as a means of telling the user that the
    rewriter has panicked, and that filing a bug report would be appropriate.
    """

    def __str__(self):
        return f"{super().__str__()}\n\nThis is an unhandled internal error in safemath."


class CompilerPanic(SafeMathInternalException):
    """General unexpected error during rewriting."""


class UnexpectedNodeType(SafeMathInternalException):
    """Unexpected AST node type."""


@contextlib.contextmanager
def tag_exceptions(node, fallback_exception_type=CompilerPanic, note=None):
    try:
        yield
    except _BaseSafeMathException as e:
        if not e.annotations and not e.lineno:
            tb = e.__traceback__
            raise e.with_annotation(node).with_traceback(tb) from None
        raise e from None
    except Exception as e:
        tb = e.__traceback__
        fallback_message = f"unhandled exception {e}"
        if note:
            fallback_message += f", {note}"
        raise fallback_exception_type(fallback_message, node).with_traceback(tb)
