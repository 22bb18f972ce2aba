"""
Field mapping, primary-key selection and record key normalization.

Auto-mapping joins source and target fields on equal display names.
Records are rewritten to field-id keys as soon as they are fetched so the
reconciler and transformer never see name-keyed values.
"""

import json
import logging
from collections.abc import Iterable
from typing import Any

from tablestore.errors import ConfigurationError
from tablestore.models import Field, FieldMapping, Record
from utils.config import DEFAULT_PRIMARY_KEY_SYNONYMS

logger = logging.getLogger(__name__)


def _normalize_numbers(value: Any) -> Any:
    # 7.0 and 7 are the same number; the store may return either
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {k: _normalize_numbers(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_numbers(v) for v in value]
    return value


def canonical_value(value: Any) -> str:
    """
    Serialize a field value to a canonical string

    Two values are considered equal iff their canonical forms are equal.
    Dict keys are sorted and integral floats render as integers, so ``1``
    and ``1.0`` compare equal while ``1``, ``"1"`` and ``True`` stay distinct.
    """
    return json.dumps(
        _normalize_numbers(value), sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str
    )


def build_mapping(
    source_fields: list[Field],
    target_fields: list[Field],
    explicit: FieldMapping | None = None,
) -> FieldMapping:
    """
    Build the source field id -> target field id mapping

    A non-empty explicit mapping is returned as given. Otherwise fields are
    matched on equal names; when several target fields share a name the
    last one wins. Source fields with no same-named target are left out.

    Args:
        source_fields: Fields of the source table
        target_fields: Fields of the target table
        explicit: Caller-supplied mapping

    Returns:
        FieldMapping (possibly empty)
    """
    if explicit:
        return dict(explicit)

    target_by_name = {f.name: f.id for f in target_fields}
    mapping = {f.id: target_by_name[f.name] for f in source_fields if f.name in target_by_name}

    logger.debug(f"Auto-mapped {len(mapping)} of {len(source_fields)} source fields by name")
    return mapping


def describe_matches(
    source_fields: list[Field],
    target_fields: list[Field],
    mapping: FieldMapping,
) -> list[dict[str, Any]]:
    """List mapped field pairs with names and types, for display."""
    source_by_id = {f.id: f for f in source_fields}
    target_by_id = {f.id: f for f in target_fields}

    matches = []
    for source_id, target_id in mapping.items():
        source = source_by_id.get(source_id)
        target = target_by_id.get(target_id)
        matches.append({
            "source_field_id": source_id,
            "source_field_name": source.name if source else None,
            "target_field_id": target_id,
            "target_field_name": target.name if target else None,
            "source_type": int(source.type) if source and source.type is not None else None,
            "target_type": int(target.type) if target and target.type is not None else None,
        })
    return matches


def detect_primary_key(
    fields: list[Field],
    synonyms: Iterable[str] = DEFAULT_PRIMARY_KEY_SYNONYMS,
) -> str | None:
    """
    Guess the primary-key field of a table

    Picks the first field whose name contains one of the synonyms
    (case-insensitive), else the first field. Best effort: nothing checks
    that the chosen field holds unique values.

    Returns:
        Field id, or None for an empty field list
    """
    lowered = [s.lower() for s in synonyms if s]
    for f in fields:
        name = (f.name or "").lower()
        if any(s in name for s in lowered):
            return f.id

    return fields[0].id if fields else None


def resolve_primary_key(
    explicit: str | None,
    fields: list[Field],
    synonyms: Iterable[str] = DEFAULT_PRIMARY_KEY_SYNONYMS,
) -> str:
    """
    Turn a caller-supplied key (id or name) or the heuristic into a field id

    Raises:
        ConfigurationError: If no key is given and none can be derived
    """
    if explicit:
        for f in fields:
            if f.id == explicit:
                return f.id
        for f in fields:
            if f.name == explicit:
                return f.id
        logger.warning(f"Primary key {explicit!r} is not a known source field, using it as given")
        return explicit

    detected = detect_primary_key(fields, synonyms)
    if detected is None:
        raise ConfigurationError("cannot determine a primary key: source table has no fields")

    logger.info(f"Auto-detected primary key field {detected}")
    return detected


def normalize_record_fields(values: dict[str, Any], fields: list[Field]) -> dict[str, Any]:
    """
    Rewrite a record's keys to field ids

    Field-id keys are kept, field-name keys are translated to the id and
    unknown keys are kept as they are. When a field id and another field's
    name collide, the id wins.
    """
    field_ids = {f.id for f in fields}
    id_by_name: dict[str, str] = {}
    for f in fields:
        id_by_name.setdefault(f.name, f.id)

    normalized: dict[str, Any] = {}
    for key, value in values.items():
        if key in field_ids:
            continue
        normalized[id_by_name.get(key, key)] = value

    for key, value in values.items():
        if key in field_ids:
            normalized[key] = value

    return normalized


def normalize_records(records: list[Record], fields: list[Field]) -> list[Record]:
    return [Record(id=r.id, fields=normalize_record_fields(r.fields, fields)) for r in records]
