"""
Data model shared by the table store client and the sync core.

Field values are left as the store returns them: strings, numbers,
booleans, lists of option names, or structured objects (attachments,
links, rich text segments) that are passed through untouched.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

# source field id -> target field id
FieldMapping = dict[str, str]


class FieldType(IntEnum):
    """Vendor field type codes."""

    TEXT = 1
    NUMBER = 2
    SINGLE_SELECT = 3
    MULTI_SELECT = 4
    DATETIME = 5
    CHECKBOX = 7
    PERSON = 11
    PHONE = 13
    URL = 15
    ATTACHMENT = 17
    LINK = 18
    FORMULA = 20
    BIDIRECTIONAL_LINK = 21

    @classmethod
    def parse(cls, code: Any) -> "FieldType | None":
        """
        Map a raw type code to a FieldType

        Args:
            code: Numeric code as returned by the store (int or numeric string)

        Returns:
            FieldType, or None for codes this client does not know
        """
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class Field:
    """A column of a table."""

    id: str
    name: str
    type: FieldType | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Field":
        return cls(
            id=item["field_id"],
            name=item.get("field_name", ""),
            type=FieldType.parse(item.get("type")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_id": self.id,
            "field_name": self.name,
            "type": int(self.type) if self.type is not None else None,
        }


@dataclass(frozen=True)
class Record:
    """A row of a table; ``fields`` is keyed by field id once normalized."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Record":
        return cls(
            id=item.get("record_id") or item.get("id", ""),
            fields=dict(item.get("fields") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"record_id": self.id, "fields": dict(self.fields)}


@dataclass(frozen=True)
class Table:
    """A table inside a Base."""

    id: str
    name: str
    revision: int | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Table":
        return cls(
            id=item["table_id"],
            name=item.get("name", ""),
            revision=item.get("revision"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"table_id": self.id, "name": self.name, "revision": self.revision}
