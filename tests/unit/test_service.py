"""
Unit tests for the public service entry points

All entry points return result dicts; these tests run them against the
in-memory table store.
"""

import json
from unittest.mock import Mock

import pytest
from conftest import SOURCE_TABLE_ID, TARGET_TABLE_ID

from reconciliation.service import (
    analyze_diff,
    apply_diff,
    copy_records,
    list_tables,
    match_fields,
    preview_filter,
    validate_field_mapping,
    validate_record_ids,
)
from tablestore.base import TableStore
from tablestore.errors import ConfigurationError, TableStoreError


class TestAnalyzeDiff:
    """Test analyze_diff"""

    def test_analyze_by_table_names(self, orders_store, settings):
        result = analyze_diff(orders_store, "Orders", "Orders Copy", settings=settings)

        assert result["success"] is True
        assert result["source_table_id"] == SOURCE_TABLE_ID
        assert result["target_table_id"] == TARGET_TABLE_ID
        assert result["primary_key_field"] == "fldS1"
        assert result["field_mapping"] == {
            "fldS1": "fldT1", "fldS2": "fldT2", "fldS3": "fldT3", "fldS4": "fldT4",
        }
        assert result["summary"]["new"] == 1
        assert result["summary"]["modified"] == 1
        assert result["summary"]["same"] == 1
        assert result["summary"]["deleted"] == 1

    def test_result_is_json_serializable(self, orders_store, settings):
        result = analyze_diff(orders_store, SOURCE_TABLE_ID, TARGET_TABLE_ID, settings=settings)

        assert json.loads(json.dumps(result)) == result

    def test_analyze_is_read_only(self, orders_store, settings):
        analyze_diff(orders_store, SOURCE_TABLE_ID, TARGET_TABLE_ID, settings=settings)

        assert orders_store.writes == []

    def test_primary_key_by_name(self, orders_store, settings):
        result = analyze_diff(orders_store, "Orders", "Orders Copy", primary_key_field="Name",
                              settings=settings)

        assert result["primary_key_field"] == "fldS2"
        # Bob/Robert no longer match by name
        assert result["summary"]["new"] == 2

    def test_explicit_mapping(self, orders_store, settings):
        result = analyze_diff(
            orders_store, "Orders", "Orders Copy",
            primary_key_field="fldS1",
            explicit_mapping={"fldS1": "fldT1", "fldS3": "fldT3"},
            settings=settings,
        )

        assert result["field_mapping"] == {"fldS1": "fldT1", "fldS3": "fldT3"}
        assert result["summary"]["modified"] == 0
        assert result["summary"]["same"] == 2

    def test_unknown_table_name_fails(self, orders_store):
        result = analyze_diff(orders_store, "Nope", "Orders Copy")

        assert result["success"] is False
        assert "table not found" in result["error"]

    def test_empty_table_reference_fails_before_network(self):
        store = Mock(spec=TableStore)

        result = analyze_diff(store, "Orders", "  ")

        assert result["success"] is False
        store.resolve_table_id.assert_not_called()
        store.list_tables.assert_not_called()

    def test_no_derivable_primary_key_fails_before_record_fetch(self, memory_store):
        memory_store.add_table(SOURCE_TABLE_ID, "Empty", [])
        memory_store.add_table(TARGET_TABLE_ID, "Other", [])

        result = analyze_diff(memory_store, SOURCE_TABLE_ID, TARGET_TABLE_ID)

        assert result["success"] is False
        assert "primary key" in result["error"]
        assert memory_store.list_record_calls == 0

    def test_store_error_carries_details(self, orders_store):
        result = analyze_diff(orders_store, "tblMissing0001", TARGET_TABLE_ID)

        assert result["success"] is False
        assert result["details"] == {"code": 1, "msg": "TableIdNotFound"}

    def test_unexpected_error_becomes_failure(self):
        store = Mock(spec=TableStore)
        store.resolve_table_id.side_effect = KeyError("boom")

        result = analyze_diff(store, SOURCE_TABLE_ID, TARGET_TABLE_ID)

        assert result["success"] is False
        assert "KeyError" in result["error"]


class TestApplyDiff:
    """Test apply_diff"""

    def test_apply_analysis_results(self, orders_store, settings):
        analysis = analyze_diff(orders_store, "Orders", "Orders Copy", settings=settings)

        result = apply_diff(orders_store, "Orders", "Orders Copy", analysis["results"], settings=settings)

        assert result["success"] is True
        assert result["success_count"] == 2
        assert result["error_count"] == 0
        assert result["processed"] == 2
        assert [w[0] for w in orders_store.writes] == ["create", "update"]

    def test_apply_then_analyze_is_clean(self, orders_store, settings):
        analysis = analyze_diff(orders_store, "Orders", "Orders Copy", settings=settings)
        apply_diff(orders_store, "Orders", "Orders Copy", analysis["results"], settings=settings)

        again = analyze_diff(orders_store, "Orders", "Orders Copy", settings=settings)

        assert again["summary"]["new"] == 0
        assert again["summary"]["modified"] == 0
        assert again["summary"]["same"] == 3
        # Extra target records are never removed
        assert again["summary"]["deleted"] == 1

    def test_partial_failure_still_succeeds(self, orders_store, settings):
        analysis = analyze_diff(orders_store, "Orders", "Orders Copy", settings=settings)
        orders_store.fail_on = lambda operation, fields: operation == "update"

        result = apply_diff(orders_store, "Orders", "Orders Copy", analysis["results"], settings=settings)

        assert result["success"] is True
        assert result["success_count"] == 1
        assert result["error_count"] == 1
        assert len(result["errors"]) == 1

    @pytest.mark.parametrize("payload", [None, "diff", {"new": []}])
    def test_unusable_diff_rejected_before_network(self, payload):
        store = Mock(spec=TableStore)

        result = apply_diff(store, SOURCE_TABLE_ID, TARGET_TABLE_ID, payload)

        assert result["success"] is False
        store.fetch_all_fields.assert_not_called()

    def test_bad_explicit_mapping_rejected(self, orders_store):
        result = apply_diff(orders_store, "Orders", "Orders Copy", {"new": [], "modified": []},
                            explicit_mapping={"fldS1": ""})

        assert result["success"] is False
        assert "empty field ids" in result["error"]


class TestCopyRecords:
    """Test copy_records modes"""

    def test_copy_all(self, orders_store, settings):
        result = copy_records(orders_store, "Orders", "Orders Copy", settings=settings)

        assert result["success"] is True
        assert result["mode"] == "all"
        assert result["total_count"] == 3
        assert result["success_count"] == 3
        assert all(w[0] == "create" for w in orders_store.writes)

    def test_copy_filtered(self, orders_store, settings):
        result = copy_records(
            orders_store, "Orders", "Orders Copy",
            filters=[{"field": "Name", "operator": "startsWith", "value": "b"}],
            settings=settings,
        )

        assert result["mode"] == "filter"
        assert result["matched_count"] == 1
        assert orders_store.writes[0][3]["fldT2"] == "Bob"

    def test_copy_range_reports_missing_records(self, orders_store, settings):
        result = copy_records(
            orders_store, "Orders", "Orders Copy",
            record_ids=["recS1", "recMissing"],
            settings=settings,
        )

        assert result["success"] is True
        assert result["mode"] == "range"
        assert result["total_count"] == 2
        assert result["success_count"] == 1
        assert result["error_count"] == 1
        assert "recMissing" in result["errors"][0]

    def test_copy_with_diff(self, orders_store, settings):
        result = copy_records(orders_store, "Orders", "Orders Copy", enable_diff=True, settings=settings)

        assert result["mode"] == "diff"
        assert result["summary"]["to_apply"] == 2
        assert result["success_count"] == 2

    def test_copy_with_diff_and_filter(self, orders_store, settings):
        result = copy_records(
            orders_store, "Orders", "Orders Copy",
            enable_diff=True,
            filters=[{"field": "订单编号", "operator": "equals", "value": "A-003"}],
            settings=settings,
        )

        assert result["summary"]["new"] == 1
        assert result["summary"]["modified"] == 0
        assert [w[0] for w in orders_store.writes] == ["create"]

    def test_empty_filter_list_rejected(self, orders_store):
        result = copy_records(orders_store, "Orders", "Orders Copy", filters=[])

        assert result["success"] is False
        assert orders_store.writes == []

    def test_invalid_operator_rejected_before_writes(self, orders_store):
        result = copy_records(
            orders_store, "Orders", "Orders Copy",
            filters=[{"field": "Name", "operator": "regex", "value": ".*"}],
        )

        assert result["success"] is False
        assert "unsupported filter operator" in result["error"]
        assert orders_store.writes == []


class TestReadOnlyEntryPoints:
    """Test preview_filter, match_fields and list_tables"""

    def test_preview_filter(self, orders_store):
        result = preview_filter(
            orders_store, "Orders",
            [{"field": "Amount", "operator": "notEmpty"}],
        )

        assert result == {
            "success": True,
            "total_count": 3,
            "matched_count": 3,
            "filters": [{"field": "fldS3", "operator": "notEmpty", "value": None}],
        }

    def test_match_fields(self, orders_store):
        result = match_fields(orders_store, "Orders", "Orders Copy")

        assert result["success"] is True
        assert result["match_count"] == 4
        assert result["matches"][0]["source_field_name"] == "订单编号"
        assert len(result["source_fields"]) == 4

    def test_list_tables(self, orders_store):
        result = list_tables(orders_store)

        assert result["success"] is True
        assert [t["name"] for t in result["tables"]] == ["Orders", "Orders Copy"]

    def test_list_tables_auth_failure(self):
        store = Mock(spec=TableStore)
        store.list_tables.side_effect = TableStoreError(
            "list_tables failed: permission denied", code=2, payload={"code": 2}
        )

        result = list_tables(store)

        assert result == {
            "success": False,
            "error": "list_tables failed: permission denied",
            "details": {"code": 2},
        }


class TestValidation:
    """Test input validation helpers"""

    def test_mapping_none_allowed(self):
        assert validate_field_mapping(None) is None

    def test_mapping_must_be_object(self):
        with pytest.raises(ConfigurationError):
            validate_field_mapping([("a", "b")])

    @pytest.mark.parametrize("record_ids", [[], "recA", ["recA", "xyz"], [None]])
    def test_invalid_record_ids(self, record_ids):
        with pytest.raises(ConfigurationError):
            validate_record_ids(record_ids)

    def test_valid_record_ids(self):
        assert validate_record_ids(["recA", "recB"]) == ["recA", "recB"]
