"""
Record reconciliation engine.

Matches source records to target records on a primary-key value and
classifies every record as new, modified, same or deleted. Target records
that cannot take part in matching are reported as unmatchable instead of
being dropped.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace

from tablestore.errors import ConfigurationError
from tablestore.models import Field, FieldMapping, Record
from transformation.fields import transform_fields
from utils.metrics import SyncMetrics, get_sync_metrics
from utils.tracing import trace_operation

from .mapping import canonical_value

logger = logging.getLogger(__name__)

CATEGORIES = ("new", "modified", "same", "deleted", "unmatchable")

MISSING_PRIMARY_KEY = "missing_primary_key"
DUPLICATE_PRIMARY_KEY = "duplicate_primary_key"


def _record_from_dict(data: Any) -> Record:
    if not isinstance(data, dict):
        raise ConfigurationError("record entry must be an object")
    return Record.from_api(data)


@dataclass(frozen=True)
class FieldDifference:
    """One mapped field pair whose values differ."""

    field_id: str
    target_field_id: str
    source_value: Any
    target_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_id": self.field_id,
            "target_field_id": self.target_field_id,
            "source_value": self.source_value,
            "target_value": self.target_value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldDifference":
        return cls(
            field_id=data.get("field_id", ""),
            target_field_id=data.get("target_field_id", ""),
            source_value=data.get("source_value"),
            target_value=data.get("target_value"),
        )


@dataclass(frozen=True)
class NewEntry:
    """A source record with no target counterpart."""

    source_record: Record
    primary_key: Any
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return self.source_record.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "primary_key": self.primary_key,
            "fields": self.fields,
            "source_record": self.source_record.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NewEntry":
        return cls(
            source_record=_record_from_dict(data.get("source_record")),
            primary_key=data.get("primary_key"),
            fields=dict(data.get("fields") or {}),
        )


@dataclass(frozen=True)
class ModifiedEntry:
    """A matched pair where at least one mapped field differs."""

    source_record: Record
    target_record: Record
    primary_key: Any
    differences: list[FieldDifference] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return self.source_record.id

    @property
    def target_record_id(self) -> str:
        return self.target_record.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "target_record_id": self.target_record_id,
            "primary_key": self.primary_key,
            "fields": self.fields,
            "differences": [d.to_dict() for d in self.differences],
            "source_record": self.source_record.to_dict(),
            "target_record": self.target_record.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModifiedEntry":
        target = data.get("target_record")
        if target is None:
            # Only the id is required to issue the update
            target_id = data.get("target_record_id")
            if not target_id:
                raise ConfigurationError("modified entry is missing target_record_id")
            target = {"record_id": target_id}
        return cls(
            source_record=_record_from_dict(data.get("source_record")),
            target_record=_record_from_dict(target),
            primary_key=data.get("primary_key"),
            differences=[FieldDifference.from_dict(d) for d in data.get("differences") or []],
            fields=dict(data.get("fields") or {}),
        )


@dataclass(frozen=True)
class SameEntry:
    source_record: Record
    target_record: Record
    primary_key: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.source_record.id,
            "target_record_id": self.target_record.id,
            "primary_key": self.primary_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SameEntry":
        return cls(
            source_record=Record(id=data.get("record_id", "")),
            target_record=Record(id=data.get("target_record_id", "")),
            primary_key=data.get("primary_key"),
        )


@dataclass(frozen=True)
class DeletedEntry:
    """A target record no source record matched."""

    target_record: Record
    primary_key: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.target_record.id,
            "primary_key": self.primary_key,
            "target_record": self.target_record.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeletedEntry":
        target = data.get("target_record") or {"record_id": data.get("record_id", "")}
        return cls(target_record=_record_from_dict(target), primary_key=data.get("primary_key"))


@dataclass(frozen=True)
class UnmatchableEntry:
    """A target record excluded from matching, with the reason."""

    target_record: Record
    reason: str
    primary_key: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.target_record.id,
            "reason": self.reason,
            "primary_key": self.primary_key,
            "target_record": self.target_record.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnmatchableEntry":
        target = data.get("target_record") or {"record_id": data.get("record_id", "")}
        return cls(
            target_record=_record_from_dict(target),
            reason=data.get("reason", MISSING_PRIMARY_KEY),
            primary_key=data.get("primary_key"),
        )


@dataclass
class DiffResult:
    """Outcome of one reconciliation run."""

    new: list[NewEntry] = field(default_factory=list)
    modified: list[ModifiedEntry] = field(default_factory=list)
    same: list[SameEntry] = field(default_factory=list)
    deleted: list[DeletedEntry] = field(default_factory=list)
    unmatchable: list[UnmatchableEntry] = field(default_factory=list)
    skipped_source_count: int = 0

    def counts(self) -> dict[str, int]:
        return {category: len(getattr(self, category)) for category in CATEGORIES}

    @property
    def summary(self) -> dict[str, int]:
        counts = self.counts()
        return {
            **counts,
            "skipped_source": self.skipped_source_count,
            "to_apply": counts["new"] + counts["modified"],
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "new": [e.to_dict() for e in self.new],
            "modified": [e.to_dict() for e in self.modified],
            "same": [e.to_dict() for e in self.same],
            "deleted": [e.to_dict() for e in self.deleted],
            "unmatchable": [e.to_dict() for e in self.unmatchable],
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "DiffResult":
        """
        Rebuild a result from its serialized form

        Only ``new`` and ``modified`` are required; the other categories
        default to empty.

        Raises:
            ConfigurationError: If the payload is not a usable diff result
        """
        if not isinstance(data, dict):
            raise ConfigurationError("diff result must be an object")

        for key in ("new", "modified"):
            if not isinstance(data.get(key), list):
                raise ConfigurationError(f"diff result is missing the '{key}' list")

        summary = data.get("summary") or {}
        return cls(
            new=[NewEntry.from_dict(e) for e in data["new"]],
            modified=[ModifiedEntry.from_dict(e) for e in data["modified"]],
            same=[SameEntry.from_dict(e) for e in data.get("same") or []],
            deleted=[DeletedEntry.from_dict(e) for e in data.get("deleted") or []],
            unmatchable=[UnmatchableEntry.from_dict(e) for e in data.get("unmatchable") or []],
            skipped_source_count=int(summary.get("skipped_source", 0) or 0),
        )


def _differences(source: Record, target: Record, mapping: FieldMapping) -> list[FieldDifference]:
    differences = []
    for source_id, target_id in mapping.items():
        source_value = source.fields.get(source_id)
        target_value = target.fields.get(target_id)
        if canonical_value(source_value) != canonical_value(target_value):
            differences.append(FieldDifference(source_id, target_id, source_value, target_value))
    return differences


def reconcile(
    source_records: list[Record],
    target_records: list[Record],
    mapping: FieldMapping,
    primary_key_field: str,
    target_fields_by_id: dict[str, Field] | None = None,
    metrics: SyncMetrics | None = None,
) -> DiffResult:
    """
    Classify source and target records against each other.

    Args:
        source_records: Id-keyed source records
        target_records: Id-keyed target records
        mapping: Source field id -> target field id
        primary_key_field: Source field id used as the join key
        target_fields_by_id: Target fields, used to preview write payloads
        metrics: Metrics sink (default: process-wide SyncMetrics)

    Returns:
        DiffResult with entries in input order
    """
    metrics = metrics or get_sync_metrics()
    target_fields_by_id = target_fields_by_id or {}
    started = time.monotonic()

    with trace_operation(
        "reconcile_records",
        kind=trace.SpanKind.INTERNAL,
        source_count=len(source_records),
        target_count=len(target_records),
        primary_key_field=primary_key_field,
    ) as span:
        result = DiffResult()
        target_pk_field = mapping.get(primary_key_field)

        # canonical key -> (raw key value, target record), in target order
        index: dict[str, tuple[Any, Record]] = {}

        if target_pk_field is None:
            logger.warning(
                f"Primary key field {primary_key_field} is not mapped; "
                f"no target record can be matched"
            )
        else:
            for target in target_records:
                value = target.fields.get(target_pk_field)
                if value is None:
                    result.unmatchable.append(UnmatchableEntry(target, MISSING_PRIMARY_KEY))
                    continue

                key = canonical_value(value)
                if key in index:
                    displaced_value, displaced = index[key]
                    result.unmatchable.append(
                        UnmatchableEntry(displaced, DUPLICATE_PRIMARY_KEY, displaced_value)
                    )
                index[key] = (value, target)

        for source in source_records:
            value = source.fields.get(primary_key_field)
            if value is None:
                result.skipped_source_count += 1
                continue

            matched = index.pop(canonical_value(value), None)

            if matched is None:
                payload = transform_fields(source.fields, mapping, target_fields_by_id, metrics)
                result.new.append(NewEntry(source, value, payload))
                continue

            _, target = matched
            differences = _differences(source, target, mapping)
            if differences:
                payload = transform_fields(source.fields, mapping, target_fields_by_id, metrics)
                result.modified.append(ModifiedEntry(source, target, value, differences, payload))
            else:
                result.same.append(SameEntry(source, target, value))

        if target_pk_field is None:
            result.deleted = [DeletedEntry(t, None) for t in target_records]
        else:
            result.deleted = [DeletedEntry(t, v) for v, t in index.values()]

        counts = result.counts()
        for category, count in counts.items():
            span.set_attribute(f"diff.{category}", count)

        duration = time.monotonic() - started
        metrics.record_diff(counts, duration)

        logger.info(
            f"Reconciliation summary: "
            f"{len(source_records)} source records, "
            f"{len(target_records)} target records, "
            f"{counts['new']} new, "
            f"{counts['modified']} modified, "
            f"{counts['same']} same, "
            f"{counts['deleted']} deleted, "
            f"{counts['unmatchable']} unmatchable, "
            f"{result.skipped_source_count} skipped"
        )

        return result
