"""
Record filter predicates for filtered copies and filter previews.

A condition is ``{"field": ..., "operator": ..., "value": ...}``. Conditions
combine with AND; comparisons are case-insensitive on the displayed value.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any

from tablestore.errors import ConfigurationError
from tablestore.models import Field

from .transformers import stringify

logger = logging.getLogger(__name__)

OPERATORS = frozenset({"equals", "contains", "startsWith", "endsWith", "isEmpty", "notEmpty"})


@dataclass(frozen=True)
class FilterCondition:
    field: str
    operator: str
    value: Any = None

    def __post_init__(self):
        if not isinstance(self.field, str) or not self.field.strip():
            raise ConfigurationError("filter field must be a non-empty string")
        if self.operator not in OPERATORS:
            raise ConfigurationError(
                f"unsupported filter operator: {self.operator!r} "
                f"(expected one of {', '.join(sorted(OPERATORS))})"
            )

    @classmethod
    def from_dict(cls, data: Any) -> "FilterCondition":
        if isinstance(data, FilterCondition):
            return data
        if not isinstance(data, dict):
            raise ConfigurationError(f"filter must be an object, got {type(data).__name__}")
        return cls(
            field=data.get("field", ""),
            operator=data.get("operator", ""),
            value=data.get("value"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}

    def resolve(self, fields: list[Field]) -> "FilterCondition":
        """Rewrite a field name to its field id; ids and unknown names are kept."""
        if any(f.id == self.field for f in fields):
            return self
        for f in fields:
            if f.name == self.field:
                return replace(self, field=f.id)
        logger.warning(f"Filter field {self.field!r} not found in table fields")
        return self

    def matches(self, record_fields: dict[str, Any]) -> bool:
        value = record_fields.get(self.field)

        if value is None or value == "":
            return self.operator == "isEmpty"
        if self.operator == "notEmpty":
            return True
        if self.operator == "isEmpty":
            return False

        actual = stringify(value).lower()
        expected = stringify(self.value).lower()

        if self.operator == "equals":
            return actual == expected
        if self.operator == "contains":
            return expected in actual
        if self.operator == "startsWith":
            return actual.startswith(expected)
        return actual.endswith(expected)


def build_conditions(raw: list[Any] | None, fields: list[Field] | None = None) -> list[FilterCondition]:
    """
    Parse and resolve a list of filter dicts

    Args:
        raw: Filter dicts (or FilterCondition instances)
        fields: Table fields used to resolve field names to ids

    Returns:
        List of FilterCondition

    Raises:
        ConfigurationError: On a malformed condition or unknown operator
    """
    conditions = [FilterCondition.from_dict(item) for item in raw or []]
    if fields is not None:
        conditions = [c.resolve(fields) for c in conditions]
    return conditions


def apply_filters(record_fields: dict[str, Any], conditions: list[FilterCondition]) -> bool:
    """True when the record satisfies every condition (an empty list matches all)."""
    return all(condition.matches(record_fields) for condition in conditions)
