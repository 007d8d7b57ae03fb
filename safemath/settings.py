import os
from typing import Optional

SAFEMATH_ERROR_CONTEXT_LINES = int(os.environ.get("SAFEMATH_ERROR_CONTEXT_LINES", "1"))
SAFEMATH_ERROR_LINE_NUMBERS = os.environ.get("SAFEMATH_ERROR_LINE_NUMBERS", "1") == "1"

SAFEMATH_TRACEBACK_LIMIT: Optional[int]

_tb_limit_str = os.environ.get("SAFEMATH_TRACEBACK_LIMIT")
if _tb_limit_str is not None:
    SAFEMATH_TRACEBACK_LIMIT = int(_tb_limit_str)
else:
    SAFEMATH_TRACEBACK_LIMIT = None
