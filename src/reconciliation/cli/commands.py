"""
CLI command implementations.

Each command calls one service entry point, prints the formatted result
and exits with 0 on success or 1 on a failed result.
"""

import argparse
import json
import logging
import sys
from typing import Any

from reconciliation.report import (
    export_report_json,
    format_apply_console,
    format_diff_console,
    format_fields_console,
    format_preview_console,
    format_tables_console,
    load_report_json,
)
from reconciliation.service import (
    analyze_diff,
    apply_diff,
    copy_records,
    list_tables,
    match_fields,
    preview_filter,
)

from .credentials import build_client

logger = logging.getLogger(__name__)


def _load_json_file(path: str, what: str) -> Any:
    try:
        with open(path, encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read {what} file {path}: {e}")
        sys.exit(1)


def _finish(result: dict[str, Any], output: str) -> None:
    print(output)
    sys.exit(0 if result.get("success") else 1)


def cmd_tables(args: argparse.Namespace) -> None:
    """List the Base's tables"""
    client, _ = build_client(args)
    result = list_tables(client)
    _finish(result, format_tables_console(result))


def cmd_fields(args: argparse.Namespace) -> None:
    """Show auto-matched fields between two tables"""
    client, _ = build_client(args)
    result = match_fields(client, args.source, args.target)
    _finish(result, format_fields_console(result))


def cmd_analyze(args: argparse.Namespace) -> None:
    """
    Run a read-only diff analysis

    Args:
        args: Parsed command-line arguments
    """
    mapping = _load_json_file(args.mapping, "mapping") if args.mapping else None
    client, settings = build_client(args)

    logger.info(f"Analyzing {args.source} -> {args.target}")
    result = analyze_diff(
        client,
        args.source,
        args.target,
        primary_key_field=args.primary_key,
        explicit_mapping=mapping,
        settings=settings,
    )

    if args.output and result.get("success"):
        export_report_json(result, args.output)
        logger.info(f"Analysis written to {args.output}")

    if args.format == 'json':
        output = json.dumps(result, indent=2, ensure_ascii=False, default=str)
    else:
        output = format_diff_console(result)
    _finish(result, output)


def cmd_apply(args: argparse.Namespace) -> None:
    """
    Apply a saved analysis

    Args:
        args: Parsed command-line arguments
    """
    try:
        analysis = load_report_json(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read analysis file {args.input}: {e}")
        sys.exit(1)

    source = args.source or analysis.get("source_table_id")
    target = args.target or analysis.get("target_table_id")
    if not source or not target:
        logger.error("Source and target tables are neither given nor recorded in the analysis")
        sys.exit(1)

    if args.mapping:
        mapping = _load_json_file(args.mapping, "mapping")
    else:
        mapping = analysis.get("field_mapping") or None

    client, settings = build_client(args)

    logger.info(f"Applying {args.input} to {target}")
    result = apply_diff(
        client,
        source,
        target,
        analysis.get("results", analysis),
        explicit_mapping=mapping,
        settings=settings,
    )
    _finish(result, format_apply_console(result))


def cmd_copy(args: argparse.Namespace) -> None:
    """
    Copy records (all, filtered, by id, or diff-based)

    Args:
        args: Parsed command-line arguments
    """
    mapping = _load_json_file(args.mapping, "mapping") if args.mapping else None
    filters = _load_json_file(args.filters, "filters") if args.filters else None
    record_ids = None
    if args.record_ids:
        record_ids = [r.strip() for r in args.record_ids.split(',') if r.strip()]

    client, settings = build_client(args)

    result = copy_records(
        client,
        args.source,
        args.target,
        explicit_mapping=mapping,
        filters=filters,
        record_ids=record_ids,
        enable_diff=args.diff,
        primary_key_field=args.primary_key,
        settings=settings,
    )
    _finish(result, format_apply_console(result, title="COPY REPORT"))


def cmd_preview(args: argparse.Namespace) -> None:
    """Count source records matching a filter file"""
    filters = _load_json_file(args.filters, "filters")
    client, _ = build_client(args)
    result = preview_filter(client, args.source, filters)
    _finish(result, format_preview_console(result))
