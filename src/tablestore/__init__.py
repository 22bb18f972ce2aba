"""
Table store access for Lark/Feishu Base.

Components:
- models: Field, Record, Table and the FieldType code table
- base: the TableStore contract the sync core depends on
- client: BitableClient, the REST implementation of that contract
- errors: TableStoreError and ConfigurationError
"""

from .base import RecordPage, TableStore, validate_table_input
from .client import BitableClient
from .errors import ConfigurationError, TableStoreError
from .models import Field, FieldMapping, FieldType, Record, Table

__all__ = [
    "TableStore",
    "RecordPage",
    "BitableClient",
    "TableStoreError",
    "ConfigurationError",
    "Field",
    "FieldMapping",
    "FieldType",
    "Record",
    "Table",
    "validate_table_input",
]
