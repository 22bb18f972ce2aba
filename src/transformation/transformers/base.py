"""
Base transformer class and common utilities.

Provides the abstract base class for field coercers, the error they raise
for values that cannot be written, and shared metrics.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from prometheus_client import Counter

from utils.metrics import get_or_create_metric

logger = logging.getLogger(__name__)


# Metrics
VALUES_COERCED = get_or_create_metric(
    lambda: Counter(
        "transformation_values_coerced_total",
        "Field values passed through a coercer",
        ["transformer_type"],
    ),
    "transformation_values_coerced_total",
)


class CoercionError(ValueError):
    """A value cannot be represented in the target field's type."""


def stringify(value: Any) -> str:
    """
    Render a value the way the table store displays it

    Integral floats lose their trailing ``.0``, booleans become
    ``true``/``false``, and lists or dicts become JSON.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False, default=str)
    if value is None:
        return ""
    return str(value)


class Transformer(ABC):
    """Base class for field value transformers."""

    @abstractmethod
    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        """
        Transform a single value.

        Args:
            value: Non-null source value
            context: Transformation context (field_id, field_type)

        Returns:
            Transformed value

        Raises:
            CoercionError: If the value must not be written
        """
        pass

    def get_type(self) -> str:
        """Get transformer type for metrics."""
        return self.__class__.__name__
