"""
Field value coercers keyed by target field type.

Supports:
- Text and SingleSelect stringification
- Number parsing with rejection of non-finite or non-numeric input
- MultiSelect list wrapping
- Pass-through for every other type
"""

from .base import CoercionError, Transformer, stringify
from .types import (
    COERCERS,
    MultiSelectCoercer,
    NumberCoercer,
    PassThrough,
    TextCoercer,
    coercer_for,
)

__all__ = [
    "Transformer",
    "CoercionError",
    "stringify",
    "TextCoercer",
    "NumberCoercer",
    "MultiSelectCoercer",
    "PassThrough",
    "COERCERS",
    "coercer_for",
]
