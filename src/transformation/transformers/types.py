"""
Per-type coercers.

Each coercer adapts a source value to the representation the target
field's declared type expects. Types without a coercer pass through.
"""

import logging
import math
from typing import Any

from tablestore.models import FieldType

from .base import VALUES_COERCED, CoercionError, Transformer, stringify

logger = logging.getLogger(__name__)


class TextCoercer(Transformer):
    """Stringify for Text and SingleSelect fields."""

    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        VALUES_COERCED.labels(transformer_type=self.get_type()).inc()
        return stringify(value)


class NumberCoercer(Transformer):
    """
    Parse values for Number fields.

    Accepts ints, finite floats and numeric strings (surrounding whitespace
    ignored). Booleans map to 1/0. Everything else is rejected.
    """

    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        VALUES_COERCED.labels(transformer_type=self.get_type()).inc()

        if isinstance(value, bool):
            return 1 if value else 0

        if isinstance(value, int):
            return value

        if isinstance(value, float):
            number = value
        elif isinstance(value, str):
            number = self._parse(value)
        else:
            raise CoercionError(f"not a number: {value!r}")

        if isinstance(number, float) and not math.isfinite(number):
            raise CoercionError(f"not a finite number: {value!r}")
        return number

    @staticmethod
    def _parse(text: str) -> int | float:
        stripped = text.strip()
        if not stripped:
            raise CoercionError("empty string is not a number")
        try:
            return int(stripped)
        except ValueError:
            pass
        try:
            return float(stripped)
        except ValueError as e:
            raise CoercionError(f"not a number: {text!r}") from e


class MultiSelectCoercer(Transformer):
    """Wrap scalars in a list and stringify every option."""

    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        VALUES_COERCED.labels(transformer_type=self.get_type()).inc()
        if isinstance(value, (list, tuple)):
            return [stringify(item) for item in value]
        return [stringify(value)]


class PassThrough(Transformer):
    """Leave the value untouched (DateTime, attachments, links, ...)."""

    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        return value


_TEXT = TextCoercer()
_PASS_THROUGH = PassThrough()

COERCERS: dict[FieldType, Transformer] = {
    FieldType.TEXT: _TEXT,
    FieldType.SINGLE_SELECT: _TEXT,
    FieldType.NUMBER: NumberCoercer(),
    FieldType.MULTI_SELECT: MultiSelectCoercer(),
}


def coercer_for(field_type: FieldType | None) -> Transformer:
    """Return the coercer for a target field type; unknown types pass through."""
    if field_type is None:
        return _PASS_THROUGH
    return COERCERS.get(field_type, _PASS_THROUGH)
