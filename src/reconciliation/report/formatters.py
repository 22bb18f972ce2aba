"""
Report formatting and export utilities.

This module renders service results for the terminal and reads/writes
them as JSON files, so an analysis can be reviewed before it is applied.
"""

import json
from datetime import UTC, datetime
from typing import Any

MAX_LISTED_ENTRIES = 20


def format_timestamp(timestamp: datetime | None = None) -> str:
    return (timestamp or datetime.now(UTC)).isoformat()


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    """
    Export report to JSON file

    Args:
        report: Result dictionary returned by a service call
        output_path: Path to output file
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump({**report, "generated_at": format_timestamp()}, f, indent=2, ensure_ascii=False)


def load_report_json(input_path: str) -> dict[str, Any]:
    """
    Load a report written by export_report_json

    Returns:
        The stored dictionary

    Raises:
        ValueError: If the file does not hold a JSON object
    """
    with open(input_path, encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{input_path} does not contain a JSON object")
    return data


def _format_failure(title: str, result: dict[str, Any]) -> str:
    lines = ["=" * 80, title, "=" * 80, "Status: FAILED", f"Error: {result.get('error')}"]
    if result.get("details") is not None:
        lines.append(f"Details: {result['details']}")
    lines.append("=" * 80)
    return "\n".join(lines)


def format_diff_console(result: dict[str, Any]) -> str:
    """
    Format an analyze_diff result for console output

    Args:
        result: Result dictionary from analyze_diff

    Returns:
        Formatted string for console display
    """
    if not result.get("success"):
        return _format_failure("DIFF ANALYSIS", result)

    summary = result["summary"]
    diff = result["results"]
    lines = []

    lines.append("=" * 80)
    lines.append("DIFF ANALYSIS")
    lines.append("=" * 80)
    lines.append(f"Source Table: {result['source_table_id']}")
    lines.append(f"Target Table: {result['target_table_id']}")
    lines.append(f"Primary Key Field: {result['primary_key_field']}")
    lines.append(f"Mapped Fields: {len(result['field_mapping'])}")
    lines.append("")

    lines.append("SUMMARY")
    lines.append("-" * 80)
    lines.append(f"New:         {summary['new']:,}")
    lines.append(f"Modified:    {summary['modified']:,}")
    lines.append(f"Same:        {summary['same']:,}")
    lines.append(f"Deleted:     {summary['deleted']:,}  (never removed from the target)")
    lines.append(f"Unmatchable: {summary['unmatchable']:,}")
    lines.append(f"Skipped:     {summary['skipped_source']:,}  (source records without a key)")
    lines.append("")

    if diff["modified"]:
        lines.append("MODIFIED")
        lines.append("-" * 80)
        for entry in diff["modified"][:MAX_LISTED_ENTRIES]:
            lines.append(f"{entry['primary_key']} ({entry['record_id']} -> {entry['target_record_id']})")
            for d in entry["differences"]:
                lines.append(f"  {d['field_id']}: {d['target_value']!r} -> {d['source_value']!r}")
        if len(diff["modified"]) > MAX_LISTED_ENTRIES:
            lines.append(f"... and {len(diff['modified']) - MAX_LISTED_ENTRIES} more")
        lines.append("")

    if diff["unmatchable"]:
        lines.append("UNMATCHABLE TARGET RECORDS")
        lines.append("-" * 80)
        for entry in diff["unmatchable"][:MAX_LISTED_ENTRIES]:
            lines.append(f"{entry['record_id']}: {entry['reason']}")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)


def format_apply_console(result: dict[str, Any], title: str = "APPLY REPORT") -> str:
    """
    Format an apply_diff or copy_records result for console output

    Args:
        result: Result dictionary from apply_diff or copy_records
        title: Header line

    Returns:
        Formatted string for console display
    """
    if not result.get("success"):
        return _format_failure(title, result)

    lines = []

    lines.append("=" * 80)
    lines.append(title)
    lines.append("=" * 80)
    if "mode" in result:
        lines.append(f"Mode: {result['mode']}")
    if "matched_count" in result:
        lines.append(f"Selected: {result['matched_count']:,} of {result['total_count']:,}")
    lines.append(f"Processed: {result['processed']:,}")
    lines.append(f"Succeeded: {result['success_count']:,}")
    lines.append(f"Failed: {result['error_count']:,}")
    lines.append(f"Skipped (nothing to write): {result['skipped_count']:,}")
    lines.append("")

    if result["errors"]:
        lines.append("ERRORS")
        lines.append("-" * 80)
        for i, error in enumerate(result["errors"], 1):
            lines.append(f"{i}. {error}")
        if result["error_count"] > len(result["errors"]):
            lines.append(f"... {result['error_count'] - len(result['errors'])} more not shown")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)


def format_tables_console(result: dict[str, Any]) -> str:
    if not result.get("success"):
        return _format_failure("TABLES", result)
    lines = [f"{t['table_id']}  {t['name']}" for t in result["tables"]]
    return "\n".join(lines) if lines else "(no tables)"


def format_fields_console(result: dict[str, Any]) -> str:
    """Format a match_fields result as a source -> target listing."""
    if not result.get("success"):
        return _format_failure("FIELD MATCHES", result)

    lines = [f"{result['match_count']} of {len(result['source_fields'])} source fields matched", ""]
    for match in result["matches"]:
        lines.append(
            f"{match['source_field_name']} ({match['source_field_id']}) -> "
            f"{match['target_field_name']} ({match['target_field_id']})"
        )

    matched_ids = {m["source_field_id"] for m in result["matches"]}
    unmatched = [f for f in result["source_fields"] if f["field_id"] not in matched_ids]
    if unmatched:
        lines.append("")
        lines.append("Unmatched source fields:")
        for f in unmatched:
            lines.append(f"  {f['field_name']} ({f['field_id']})")

    return "\n".join(lines)


def format_preview_console(result: dict[str, Any]) -> str:
    if not result.get("success"):
        return _format_failure("FILTER PREVIEW", result)
    return f"{result['matched_count']:,} of {result['total_count']:,} records match"
