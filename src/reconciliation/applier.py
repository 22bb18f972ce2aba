"""
Change applier: writes the new and modified partitions of a diff.

New entries become creates, modified entries become updates of the
matched target record. Deleted, same and unmatchable entries are never
written. A failed write is counted and the run moves on.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import requests
from opentelemetry import trace

from tablestore.base import TableStore
from tablestore.errors import TableStoreError
from tablestore.models import Field, FieldMapping, Record
from transformation.fields import transform_fields
from utils.logging import ContextLogger
from utils.metrics import SyncMetrics, get_sync_metrics
from utils.tracing import add_span_event, trace_operation

from .mapping import normalize_record_fields
from .reconciler import DiffResult
from .writer import RateLimitedWriter

DEFAULT_MAX_ERRORS = 10


class ApplyState(Enum):
    PENDING = "pending"
    APPLYING = "applying"
    COMPLETED = "completed"


@dataclass
class ApplyReport:
    """
    Outcome of an apply run.

    Only the first ``max_errors`` messages are kept; ``error_count`` is
    always the full count.
    """

    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    processed: int = 0
    errors: list[str] = field(default_factory=list)
    max_errors: int = DEFAULT_MAX_ERRORS
    state: ApplyState = ApplyState.PENDING

    def add_error(self, message: str) -> None:
        self.error_count += 1
        if len(self.errors) < self.max_errors:
            self.errors.append(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success_count": self.success_count,
            "error_count": self.error_count,
            "skipped_count": self.skipped_count,
            "errors": list(self.errors),
            "processed": self.processed,
            "state": self.state.value,
        }


class ChangeApplier:
    """
    Applies one DiffResult to a target table.

    Args:
        store: Table store to write to
        target_table_id: Table receiving the writes
        mapping: Source field id -> target field id
        target_fields_by_id: Target fields, for type coercion
        source_fields: Source fields; when given, entry records are
            normalized to field-id keys before transformation
        writer: Paced writer (default: 10 writes, then 1 s pause)
        max_errors: Number of error messages kept in the report
        metrics: Metrics sink (default: process-wide SyncMetrics)
    """

    def __init__(
        self,
        store: TableStore,
        target_table_id: str,
        mapping: FieldMapping,
        target_fields_by_id: dict[str, Field],
        source_fields: list[Field] | None = None,
        writer: RateLimitedWriter | None = None,
        max_errors: int = DEFAULT_MAX_ERRORS,
        metrics: SyncMetrics | None = None,
    ):
        self.store = store
        self.target_table_id = target_table_id
        self.mapping = mapping
        self.target_fields_by_id = target_fields_by_id
        self.source_fields = source_fields
        self.writer = writer or RateLimitedWriter()
        self.max_errors = max_errors
        self.metrics = metrics or get_sync_metrics()
        self.state = ApplyState.PENDING
        self.logger = ContextLogger(__name__, target_table_id=target_table_id)

    def _payload(self, record: Record) -> dict[str, Any]:
        values = record.fields
        if self.source_fields is not None:
            values = normalize_record_fields(values, self.source_fields)
        return transform_fields(values, self.mapping, self.target_fields_by_id, self.metrics)

    def _write(self, operation: str, record_id: str, payload: dict[str, Any],
               report: ApplyReport, target_record_id: str | None = None) -> None:
        try:
            if operation == "create":
                self.writer.submit(
                    lambda: self.store.create_record(self.target_table_id, payload)
                )
            else:
                self.writer.submit(
                    lambda: self.store.update_record(self.target_table_id, target_record_id, payload)
                )
        except Exception as e:
            report.add_error(f"Failed to {operation} record {record_id}: {e}")
            self.metrics.record_write(operation, success=False)
            add_span_event("write_failed", operation=operation, record_id=record_id,
                           error_type=type(e).__name__)
            if isinstance(e, (TableStoreError, requests.RequestException)):
                self.logger.warning(
                    f"Failed to {operation} record {record_id}: {e}",
                    record_id=record_id,
                    vendor_code=getattr(e, "code", None),
                )
            else:
                # Backend bug rather than a rejected write; keep the traceback
                self.logger.error(
                    f"Unexpected error during {operation} of record {record_id}: {e}",
                    exc_info=True,
                    record_id=record_id,
                )
            return

        report.success_count += 1
        self.metrics.record_write(operation, success=True)
        self.logger.debug(f"{operation.capitalize()}d record from {record_id}", record_id=record_id)

    def apply(self, diff: DiffResult, report: ApplyReport | None = None) -> ApplyReport:
        """
        Write every new and modified entry, one at a time

        Args:
            diff: Result of a reconciliation run
            report: Report to accumulate into (default: a fresh one)

        Returns:
            ApplyReport in the COMPLETED state

        Raises:
            RuntimeError: If this applier has already run
        """
        if self.state is not ApplyState.PENDING:
            raise RuntimeError(f"apply run already {self.state.value}")

        report = report or ApplyReport(max_errors=self.max_errors)
        started = time.monotonic()

        with trace_operation(
            "apply_diff",
            kind=trace.SpanKind.INTERNAL,
            target_table_id=self.target_table_id,
            new_count=len(diff.new),
            modified_count=len(diff.modified),
        ) as span:
            self.state = report.state = ApplyState.APPLYING
            self.logger.info(
                f"Applying {len(diff.new)} creates and {len(diff.modified)} updates",
                new_count=len(diff.new),
                modified_count=len(diff.modified),
            )

            for entry in diff.new:
                report.processed += 1
                payload = self._payload(entry.source_record)
                if not payload:
                    report.skipped_count += 1
                    continue
                self._write("create", entry.record_id, payload, report)

            for entry in diff.modified:
                report.processed += 1
                payload = self._payload(entry.source_record)
                if not payload:
                    report.skipped_count += 1
                    continue
                self._write("update", entry.record_id, payload, report, entry.target_record_id)

            self.state = report.state = ApplyState.COMPLETED

            span.set_attribute("apply.success_count", report.success_count)
            span.set_attribute("apply.error_count", report.error_count)
            self.metrics.record_apply(time.monotonic() - started)

            self.logger.info(
                f"Apply completed: {report.success_count} succeeded, "
                f"{report.error_count} failed, {report.skipped_count} skipped",
                success_count=report.success_count,
                error_count=report.error_count,
            )

        return report
