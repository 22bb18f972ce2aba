"""
Project a source record's fields onto the target table.

The output is keyed by target field id and ready for a create or update
call. Null values are never emitted; empty strings are.
"""

import logging
from typing import Any

from tablestore.models import Field, FieldMapping
from utils.metrics import SyncMetrics, get_sync_metrics

from .transformers import CoercionError, coercer_for

logger = logging.getLogger(__name__)


def transform_fields(
    record_fields: dict[str, Any],
    mapping: FieldMapping,
    target_fields_by_id: dict[str, Field],
    metrics: SyncMetrics | None = None,
) -> dict[str, Any]:
    """
    Rename and coerce a record's fields for the target table

    Args:
        record_fields: Source values keyed by source field id
        mapping: Source field id -> target field id
        target_fields_by_id: Target field id -> Field (for the declared type)
        metrics: Metrics sink for dropped values

    Returns:
        Payload keyed by target field id; may be empty
    """
    payload: dict[str, Any] = {}

    for source_id, target_id in mapping.items():
        value = record_fields.get(source_id)
        if value is None:
            continue

        target_field = target_fields_by_id.get(target_id)
        field_type = target_field.type if target_field is not None else None
        coercer = coercer_for(field_type)

        try:
            payload[target_id] = coercer.transform(
                value, {"field_id": target_id, "field_type": field_type}
            )
        except CoercionError as e:
            type_name = field_type.name if field_type is not None else "UNKNOWN"
            logger.warning(f"Dropping field {target_id} ({type_name}): {e}")
            (metrics or get_sync_metrics()).record_transformation_error(type_name)

    return payload
