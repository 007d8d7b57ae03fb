import contextlib
import warnings
from typing import Optional

from safemath.exceptions import _BaseSafeMathException


class SafeMathWarning(_BaseSafeMathException, Warning):
    pass


# print a warning
def safemath_warn(warning: SafeMathWarning | str, node=None):
    if isinstance(warning, str):
        warning = SafeMathWarning(warning, node)
    warnings.warn(warning, stacklevel=2)


@contextlib.contextmanager
def warnings_filter(warnings_control: Optional[str]):
    # note: using warnings.catch_warnings() since it saves and restores
    # the warnings filter
    with warnings.catch_warnings():
        set_warnings_filter(warnings_control)
        yield


def set_warnings_filter(warnings_control: Optional[str]):
    if warnings_control == "error":
        warnings_filter = "error"
    elif warnings_control == "none":
        warnings_filter = "ignore"
    else:
        assert warnings_control is None  # sanity
        warnings_filter = "default"

    if warnings_control is not None:
        # warnings.simplefilter only adds to the warnings filters,
        # so we should clear warnings filter between calls to simplefilter()
        warnings.resetwarnings()

    warnings.simplefilter(warnings_filter, category=SafeMathWarning)  # type: ignore[arg-type]


class NoArithmeticWarning(SafeMathWarning):
    """
    Warn when a function marked for rewriting contains no arithmetic to rewrite
    """

    pass


class DecoratorOrderWarning(SafeMathWarning):
    """
    Warn when decorators applied before `@safe_math` are dropped by the rewrite
    """

    pass
