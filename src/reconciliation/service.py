"""
Public entry points for table diff, apply and copy runs.

Every function returns a plain dict with a ``success`` flag. Failures
carry ``error`` (readable message) and ``details`` (the store's raw
payload when there is one); no exception escapes.

Usage:
    from reconciliation.service import analyze_diff, apply_diff

    analysis = analyze_diff(client, "Orders", "tblTarget0001")
    if analysis["success"]:
        report = apply_diff(client, "Orders", "tblTarget0001", analysis["results"])
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import wraps
from typing import Any

from opentelemetry import context as otel_context
from opentelemetry import trace

from tablestore.base import TableStore, validate_table_input
from tablestore.errors import ConfigurationError, TableStoreError
from tablestore.models import Field, FieldMapping, Record
from transformation.filters import FilterCondition, apply_filters, build_conditions
from utils.config import SyncSettings
from utils.tracing import trace_operation

from .applier import ApplyReport, ChangeApplier
from .mapping import (
    build_mapping,
    describe_matches,
    normalize_records,
    resolve_primary_key,
)
from .reconciler import DiffResult, NewEntry, reconcile
from .writer import RateLimitedWriter

logger = logging.getLogger(__name__)

RECORD_ID_PREFIX = "rec"


def _failure(message: str, details: Any = None) -> dict[str, Any]:
    return {"success": False, "error": message, "details": details}


def result_boundary(operation: str):
    """
    Decorator turning exceptions into failure result dicts

    Configuration and store errors are expected; anything else is logged
    with its traceback before being reported.
    """
    def decorator(func: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> dict[str, Any]:
            try:
                return func(*args, **kwargs)
            except ConfigurationError as e:
                logger.error(f"{operation} rejected: {e}")
                return _failure(str(e))
            except TableStoreError as e:
                logger.error(f"{operation} failed: {e.message}")
                return _failure(e.message, e.payload)
            except Exception as e:
                logger.exception(f"Unexpected error in {operation}")
                return _failure(f"{type(e).__name__}: {e}")
        return wrapper
    return decorator


@dataclass
class TableSnapshot:
    """Fields and id-keyed records of both tables, fetched for one run."""

    source_table_id: str
    target_table_id: str
    source_fields: list[Field]
    target_fields: list[Field]
    source_records: list[Record] | None = None
    target_records: list[Record] | None = None

    @property
    def target_fields_by_id(self) -> dict[str, Field]:
        return {f.id: f for f in self.target_fields}


def _in_context(ctx: otel_context.Context, task: Callable[[], Any]) -> Any:
    token = otel_context.attach(ctx)
    try:
        return task()
    finally:
        otel_context.detach(token)


def _fetch_concurrently(**tasks: Callable[[], Any]) -> dict[str, Any]:
    """
    Run independent reads in parallel; the first failure propagates.

    Worker threads run under the caller's trace context, so request spans
    nest under the current operation span.
    """
    ctx = otel_context.get_current()
    with ThreadPoolExecutor(max_workers=max(len(tasks), 1)) as executor:
        futures = {name: executor.submit(_in_context, ctx, task) for name, task in tasks.items()}
        return {name: future.result() for name, future in futures.items()}


def _resolve_tables(store: TableStore, source_table: Any, target_table: Any) -> tuple[str, str]:
    # Validate both references before any network call
    validate_table_input(source_table)
    validate_table_input(target_table)
    return store.resolve_table_id(source_table), store.resolve_table_id(target_table)


def _fetch_fields(store: TableStore, source_table: Any, target_table: Any) -> TableSnapshot:
    source_id, target_id = _resolve_tables(store, source_table, target_table)
    fields = _fetch_concurrently(
        source=lambda: store.fetch_all_fields(source_id),
        target=lambda: store.fetch_all_fields(target_id),
    )
    return TableSnapshot(source_id, target_id, fields["source"], fields["target"])


def _fetch_records(store: TableStore, snapshot: TableSnapshot) -> None:
    records = _fetch_concurrently(
        source=lambda: store.fetch_all_records(snapshot.source_table_id),
        target=lambda: store.fetch_all_records(snapshot.target_table_id),
    )
    snapshot.source_records = normalize_records(records["source"], snapshot.source_fields)
    snapshot.target_records = normalize_records(records["target"], snapshot.target_fields)


def validate_field_mapping(mapping: Any) -> FieldMapping | None:
    """
    Check a caller-supplied mapping

    Returns:
        The mapping as a dict, or None when no mapping was supplied

    Raises:
        ConfigurationError: If the mapping is not an object or has empty ids
    """
    if mapping is None:
        return None
    if not isinstance(mapping, dict):
        raise ConfigurationError("field mapping must be an object of source -> target field ids")
    for source_id, target_id in mapping.items():
        if not source_id or not target_id:
            raise ConfigurationError("field mapping cannot contain empty field ids")
    return dict(mapping)


def validate_record_ids(record_ids: Any) -> list[str]:
    if not isinstance(record_ids, list) or not record_ids:
        raise ConfigurationError("record_ids must be a non-empty list")
    for record_id in record_ids:
        if not isinstance(record_id, str) or not record_id.startswith(RECORD_ID_PREFIX):
            raise ConfigurationError(f"invalid record id: {record_id!r}")
    return record_ids


def _analyze(
    store: TableStore,
    snapshot: TableSnapshot,
    primary_key_field: str | None,
    explicit_mapping: FieldMapping | None,
    settings: SyncSettings,
    select: Callable[[Record], bool] | None = None,
) -> tuple[DiffResult, FieldMapping, str]:
    mapping = build_mapping(snapshot.source_fields, snapshot.target_fields, explicit_mapping)
    primary_key = resolve_primary_key(
        primary_key_field, snapshot.source_fields, settings.primary_key_synonyms
    )

    _fetch_records(store, snapshot)
    source_records = snapshot.source_records
    if select is not None:
        source_records = [r for r in source_records if select(r)]

    diff = reconcile(
        source_records,
        snapshot.target_records,
        mapping,
        primary_key,
        snapshot.target_fields_by_id,
    )
    return diff, mapping, primary_key


def _apply(
    store: TableStore,
    snapshot: TableSnapshot,
    mapping: FieldMapping,
    diff: DiffResult,
    settings: SyncSettings,
    report: ApplyReport | None = None,
) -> ApplyReport:
    applier = ChangeApplier(
        store,
        snapshot.target_table_id,
        mapping,
        snapshot.target_fields_by_id,
        source_fields=snapshot.source_fields,
        writer=RateLimitedWriter(settings.pause_every, settings.pause_seconds),
        max_errors=settings.max_errors,
    )
    return applier.apply(diff, report)


@result_boundary("analyze_diff")
def analyze_diff(
    store: TableStore,
    source_table: str,
    target_table: str,
    primary_key_field: str | None = None,
    explicit_mapping: FieldMapping | None = None,
    settings: SyncSettings | None = None,
) -> dict[str, Any]:
    """
    Reconcile two tables without writing anything

    Args:
        store: Table store holding both tables
        source_table: Source table id or name
        target_table: Target table id or name
        primary_key_field: Source field id or name; detected when omitted
        explicit_mapping: Source field id -> target field id
        settings: Runtime settings

    Returns:
        Result dict with ``results`` (the serialized DiffResult),
        ``field_mapping``, ``primary_key_field`` and ``summary``
    """
    settings = settings or SyncSettings()
    explicit_mapping = validate_field_mapping(explicit_mapping)

    with trace_operation("analyze_diff", kind=trace.SpanKind.INTERNAL):
        snapshot = _fetch_fields(store, source_table, target_table)
        diff, mapping, primary_key = _analyze(
            store, snapshot, primary_key_field, explicit_mapping, settings
        )

    return {
        "success": True,
        "results": diff.to_dict(),
        "field_mapping": mapping,
        "primary_key_field": primary_key,
        "source_table_id": snapshot.source_table_id,
        "target_table_id": snapshot.target_table_id,
        "summary": diff.summary,
    }


@result_boundary("apply_diff")
def apply_diff(
    store: TableStore,
    source_table: str,
    target_table: str,
    diff_result: DiffResult | dict[str, Any],
    explicit_mapping: FieldMapping | None = None,
    settings: SyncSettings | None = None,
) -> dict[str, Any]:
    """
    Create the new and update the modified records of an earlier analysis

    Args:
        store: Table store holding both tables
        source_table: Source table id or name
        target_table: Target table id or name
        diff_result: DiffResult, or its dict form (``results`` of analyze_diff)
        explicit_mapping: Source field id -> target field id
        settings: Runtime settings

    Returns:
        Result dict with the ApplyReport counters and truncated errors
    """
    settings = settings or SyncSettings()
    explicit_mapping = validate_field_mapping(explicit_mapping)
    if diff_result is None:
        raise ConfigurationError("diff_result is required")
    diff = diff_result if isinstance(diff_result, DiffResult) else DiffResult.from_dict(diff_result)

    snapshot = _fetch_fields(store, source_table, target_table)
    mapping = build_mapping(snapshot.source_fields, snapshot.target_fields, explicit_mapping)
    report = _apply(store, snapshot, mapping, diff, settings)

    return {"success": True, **report.to_dict()}


@result_boundary("copy_records")
def copy_records(
    store: TableStore,
    source_table: str,
    target_table: str,
    explicit_mapping: FieldMapping | None = None,
    filters: list[dict[str, Any]] | None = None,
    record_ids: list[str] | None = None,
    enable_diff: bool = False,
    primary_key_field: str | None = None,
    settings: SyncSettings | None = None,
) -> dict[str, Any]:
    """
    Copy records from one table to another

    Modes:
        all: every source record is created in the target
        filter: only records matching every filter condition
        range: only the listed record ids
        diff (enable_diff): reconcile first, then create new and update
            modified records; filters and record_ids narrow the source side

    Returns:
        Result dict with ``mode``, ``total_count``, ``matched_count`` and
        the ApplyReport counters
    """
    settings = settings or SyncSettings()
    explicit_mapping = validate_field_mapping(explicit_mapping)

    if filters is not None and not filters:
        raise ConfigurationError("filtered copy needs at least one filter condition")
    conditions: list[FilterCondition] = build_conditions(filters) if filters else []
    if record_ids is not None:
        record_ids = validate_record_ids(record_ids)

    if enable_diff:
        return _copy_with_diff(
            store, source_table, target_table, explicit_mapping, conditions,
            record_ids, primary_key_field, settings,
        )

    mode = "range" if record_ids else "filter" if conditions else "all"

    with trace_operation("copy_records", kind=trace.SpanKind.INTERNAL, mode=mode):
        snapshot = _fetch_fields(store, source_table, target_table)
        mapping = build_mapping(snapshot.source_fields, snapshot.target_fields, explicit_mapping)
        report = ApplyReport(max_errors=settings.max_errors)

        if record_ids:
            records = []
            for record_id in record_ids:
                try:
                    records.append(store.get_record(snapshot.source_table_id, record_id))
                except TableStoreError as e:
                    report.add_error(f"Failed to fetch record {record_id}: {e}")
                    logger.warning(f"Failed to fetch record {record_id}: {e}")
        else:
            records = store.fetch_all_records(snapshot.source_table_id)

        total_count = len(records) if not record_ids else len(record_ids)
        records = normalize_records(records, snapshot.source_fields)

        if conditions:
            resolved = [c.resolve(snapshot.source_fields) for c in conditions]
            records = [r for r in records if apply_filters(r.fields, resolved)]

        logger.info(f"Copying {len(records)} of {total_count} records ({mode} mode)")

        diff = DiffResult(new=[NewEntry(record, None) for record in records])
        report = _apply(store, snapshot, mapping, diff, settings, report)

    return {
        "success": True,
        "mode": mode,
        "total_count": total_count,
        "matched_count": len(records),
        **report.to_dict(),
    }


def _copy_with_diff(
    store: TableStore,
    source_table: str,
    target_table: str,
    explicit_mapping: FieldMapping | None,
    conditions: list[FilterCondition],
    record_ids: list[str] | None,
    primary_key_field: str | None,
    settings: SyncSettings,
) -> dict[str, Any]:
    wanted_ids = set(record_ids) if record_ids else None
    resolved: list[FilterCondition] = []

    def select(record: Record) -> bool:
        if wanted_ids is not None and record.id not in wanted_ids:
            return False
        return apply_filters(record.fields, resolved)

    with trace_operation("copy_records", kind=trace.SpanKind.INTERNAL, mode="diff"):
        snapshot = _fetch_fields(store, source_table, target_table)
        resolved.extend(c.resolve(snapshot.source_fields) for c in conditions)

        diff, mapping, primary_key = _analyze(
            store, snapshot, primary_key_field, explicit_mapping, settings, select=select
        )
        report = _apply(store, snapshot, mapping, diff, settings)

    return {
        "success": True,
        "mode": "diff",
        "primary_key_field": primary_key,
        "summary": diff.summary,
        **report.to_dict(),
    }


@result_boundary("preview_filter")
def preview_filter(
    store: TableStore,
    source_table: str,
    filters: list[dict[str, Any]],
) -> dict[str, Any]:
    """Count how many source records a filter list would select."""
    conditions = build_conditions(filters)
    validate_table_input(source_table)

    table_id = store.resolve_table_id(source_table)
    fields = store.fetch_all_fields(table_id)
    conditions = [c.resolve(fields) for c in conditions]

    records = normalize_records(store.fetch_all_records(table_id), fields)
    matched = [r for r in records if apply_filters(r.fields, conditions)]

    logger.info(f"Filter preview on {table_id}: {len(matched)} of {len(records)} records match")
    return {
        "success": True,
        "total_count": len(records),
        "matched_count": len(matched),
        "filters": [c.to_dict() for c in conditions],
    }


@result_boundary("match_fields")
def match_fields(store: TableStore, source_table: str, target_table: str) -> dict[str, Any]:
    """Show which source fields auto-map onto which target fields."""
    snapshot = _fetch_fields(store, source_table, target_table)
    mapping = build_mapping(snapshot.source_fields, snapshot.target_fields)
    matches = describe_matches(snapshot.source_fields, snapshot.target_fields, mapping)

    return {
        "success": True,
        "source_fields": [f.to_dict() for f in snapshot.source_fields],
        "target_fields": [f.to_dict() for f in snapshot.target_fields],
        "matches": matches,
        "match_count": len(matches),
    }


@result_boundary("list_tables")
def list_tables(store: TableStore) -> dict[str, Any]:
    """List the Base's tables; doubles as a credential check."""
    tables = store.list_tables()
    return {"success": True, "tables": [t.to_dict() for t in tables]}
