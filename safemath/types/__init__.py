from .floats import float32
from .integers import INTEGER_TYPES, SIGNED_TYPES, UNSIGNED_TYPES, FixedInt

# re-export uint8 ... int256
globals().update(INTEGER_TYPES)

FLOAT_TYPES = (float, float32)

__all__ = [
    "FLOAT_TYPES",
    "FixedInt",
    "INTEGER_TYPES",
    "SIGNED_TYPES",
    "UNSIGNED_TYPES",
    "float32",
    *INTEGER_TYPES,
]
