"""
Pytest configuration and fixtures for Base table sync tests.
Provides an in-memory table store and shared table layouts.
"""

from pathlib import Path
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from tablestore.base import RecordPage, TableStore
from tablestore.errors import TableStoreError
from tablestore.models import Field, FieldType, Record, Table
from utils.config import SyncSettings
from utils.metrics import SyncMetrics

SOURCE_TABLE_ID = "tblSource0001"
TARGET_TABLE_ID = "tblTarget0001"


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "contract: mark test as contract test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class InMemoryTableStore(TableStore):
    """
    TableStore double holding tables in dicts.

    Records are served in pages of ``page_size``. ``fail_on`` is an optional
    predicate ``(operation, fields) -> bool``; when it returns True the write
    raises a vendor field error.
    """

    def __init__(self, page_size: int = 2):
        self.tables: dict[str, dict[str, Any]] = {}
        self.page_size = page_size
        self.writes: list[tuple[str, str, str, dict[str, Any]]] = []
        self.list_record_calls = 0
        self.fail_on = None
        self._next_id = 0

    def add_table(self, table_id: str, name: str, fields: list[Field],
                  records: list[Record] | None = None) -> None:
        self.tables[table_id] = {"name": name, "fields": list(fields), "records": list(records or [])}

    def _table(self, table_id: str) -> dict[str, Any]:
        if table_id not in self.tables:
            raise TableStoreError(
                "list failed: parameter error",
                code=1,
                payload={"code": 1, "msg": "TableIdNotFound"},
            )
        return self.tables[table_id]

    def list_tables(self) -> list[Table]:
        return [Table(id=table_id, name=t["name"]) for table_id, t in self.tables.items()]

    def list_fields(self, table_id: str) -> list[Field]:
        return list(self._table(table_id)["fields"])

    def list_records(self, table_id: str, page_token: str | None = None) -> RecordPage:
        self.list_record_calls += 1
        records = self._table(table_id)["records"]
        start = int(page_token or 0)
        end = start + self.page_size
        return RecordPage(
            records=list(records[start:end]),
            next_page_token=str(end) if end < len(records) else None,
        )

    def get_record(self, table_id: str, record_id: str) -> Record:
        for record in self._table(table_id)["records"]:
            if record.id == record_id:
                return record
        raise TableStoreError("get_record failed: record not found", code=1254043)

    def _check_failure(self, operation: str, fields: dict[str, Any]) -> None:
        if self.fail_on is not None and self.fail_on(operation, fields):
            raise TableStoreError(
                f"{operation}_record failed: field write failed",
                code=30,
                payload={"code": 30},
            )

    def create_record(self, table_id: str, fields: dict[str, Any]) -> Record:
        table = self._table(table_id)
        self._check_failure("create", fields)
        self._next_id += 1
        record = Record(id=f"recNew{self._next_id:04d}", fields=dict(fields))
        table["records"].append(record)
        self.writes.append(("create", table_id, record.id, dict(fields)))
        return record

    def update_record(self, table_id: str, record_id: str, fields: dict[str, Any]) -> Record:
        table = self._table(table_id)
        self._check_failure("update", fields)
        for i, record in enumerate(table["records"]):
            if record.id == record_id:
                updated = Record(id=record_id, fields={**record.fields, **fields})
                table["records"][i] = updated
                self.writes.append(("update", table_id, record_id, dict(fields)))
                return updated
        raise TableStoreError("update_record failed: record not found", code=1254043)


def order_fields(prefix: str) -> list[Field]:
    return [
        Field(id=f"{prefix}1", name="订单编号", type=FieldType.TEXT),
        Field(id=f"{prefix}2", name="Name", type=FieldType.TEXT),
        Field(id=f"{prefix}3", name="Amount", type=FieldType.NUMBER),
        Field(id=f"{prefix}4", name="Tags", type=FieldType.MULTI_SELECT),
    ]


@pytest.fixture
def memory_store() -> InMemoryTableStore:
    """Empty in-memory table store."""
    return InMemoryTableStore()


@pytest.fixture
def orders_store() -> InMemoryTableStore:
    """
    Source "Orders" and target "Orders Copy" with overlapping records:

    - A-001: same on both sides
    - A-002: Name differs (modified)
    - A-003: only in source (new)
    - A-009: only in target (deleted)
    """
    store = InMemoryTableStore()
    store.add_table(
        SOURCE_TABLE_ID,
        "Orders",
        order_fields("fldS"),
        [
            Record("recS1", {"fldS1": "A-001", "fldS2": "Alice", "fldS3": 10, "fldS4": ["vip"]}),
            Record("recS2", {"fldS1": "A-002", "fldS2": "Bob", "fldS3": 20}),
            Record("recS3", {"fldS1": "A-003", "fldS2": "Carol", "fldS3": 30}),
        ],
    )
    store.add_table(
        TARGET_TABLE_ID,
        "Orders Copy",
        order_fields("fldT"),
        [
            Record("recT1", {"fldT1": "A-001", "fldT2": "Alice", "fldT3": 10, "fldT4": ["vip"]}),
            Record("recT2", {"fldT1": "A-002", "fldT2": "Robert", "fldT3": 20}),
            Record("recT9", {"fldT1": "A-009", "fldT2": "Zed"}),
        ],
    )
    return store


@pytest.fixture
def settings() -> SyncSettings:
    """Settings with write pacing disabled."""
    return SyncSettings(pause_every=0, pause_seconds=0.0)


@pytest.fixture
def metrics() -> SyncMetrics:
    """Metrics bound to a private registry."""
    return SyncMetrics(registry=CollectorRegistry())


@pytest.fixture(scope="session")
def contracts_dir() -> Path:
    """Get JSON schema contracts directory."""
    return Path(__file__).parent.parent / "contracts"
