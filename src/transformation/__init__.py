"""
Field transformation for Base table copies.

Projects source records onto a target table's field ids, coercing values
to the target field types, and evaluates copy filters.
"""

from transformation.fields import transform_fields
from transformation.filters import FilterCondition, apply_filters, build_conditions
from transformation.transformers import CoercionError, Transformer, coercer_for, stringify

__all__ = [
    "transform_fields",
    "FilterCondition",
    "apply_filters",
    "build_conditions",
    "Transformer",
    "CoercionError",
    "coercer_for",
    "stringify",
]
