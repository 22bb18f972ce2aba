"""
The table store contract consumed by the sync core.

Any backend that can list fields, page through records, and create or
update a record by id can drive reconciliation and apply runs.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .errors import ConfigurationError
from .models import Field, Record, Table

logger = logging.getLogger(__name__)

TABLE_ID_PREFIX = "tbl"


@dataclass
class RecordPage:
    """One page of a cursor-paginated record listing."""

    records: list[Record] = field(default_factory=list)
    next_page_token: str | None = None


def validate_table_input(value: Any) -> tuple[str, str]:
    """
    Decide whether a table reference is an id or a display name

    Ids carry the ``tbl`` prefix; anything else is looked up by name.

    Args:
        value: Raw table reference from the caller

    Returns:
        Tuple of ("id" | "name", trimmed value)

    Raises:
        ConfigurationError: If the reference is empty or not a string
    """
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError("table reference must be a non-empty string")

    trimmed = value.strip()
    if trimmed.startswith(TABLE_ID_PREFIX) and len(trimmed) > 10:
        return "id", trimmed
    return "name", trimmed


class TableStore(ABC):
    """Base class for table store backends."""

    @abstractmethod
    def list_tables(self) -> list[Table]:
        """List every table in the Base."""

    @abstractmethod
    def list_fields(self, table_id: str) -> list[Field]:
        """List every field of a table."""

    @abstractmethod
    def list_records(self, table_id: str, page_token: str | None = None) -> RecordPage:
        """
        Fetch one page of records.

        Args:
            table_id: Table to read
            page_token: Cursor returned by the previous page, None for the first

        Returns:
            RecordPage whose next_page_token is None on the last page
        """

    @abstractmethod
    def get_record(self, table_id: str, record_id: str) -> Record:
        """Fetch a single record by id."""

    @abstractmethod
    def create_record(self, table_id: str, fields: dict[str, Any]) -> Record:
        """Create a record and return it (at least its id)."""

    @abstractmethod
    def update_record(self, table_id: str, record_id: str, fields: dict[str, Any]) -> Record:
        """Overwrite the given fields of an existing record."""

    def fetch_all_fields(self, table_id: str) -> list[Field]:
        fields = self.list_fields(table_id)
        logger.debug(f"Fetched {len(fields)} fields from {table_id}")
        return fields

    def fetch_all_records(self, table_id: str) -> list[Record]:
        """
        Page through a table until the cursor is exhausted

        Args:
            table_id: Table to read

        Returns:
            All records, in store order
        """
        records: list[Record] = []
        page_token = None
        seen_tokens: set[str] = set()

        while True:
            page = self.list_records(table_id, page_token)
            records.extend(page.records)

            page_token = page.next_page_token
            if not page_token:
                break
            if page_token in seen_tokens:
                # A repeated cursor would loop forever
                logger.warning(f"Page token repeated for table {table_id}, stopping pagination")
                break
            seen_tokens.add(page_token)

        logger.debug(f"Fetched {len(records)} records from {table_id}")
        return records

    def resolve_table_id(self, reference: str) -> str:
        """
        Turn a table id or table name into a table id

        Args:
            reference: Table id (``tbl...``) or display name

        Returns:
            Table id

        Raises:
            ConfigurationError: If no table carries that name
        """
        kind, value = validate_table_input(reference)
        if kind == "id":
            return value

        for table in self.list_tables():
            if table.name == value:
                return table.id

        raise ConfigurationError(f"table not found: {value}")
