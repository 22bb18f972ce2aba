"""
Console rendering and JSON export of sync results.
"""

from .formatters import (
    MAX_LISTED_ENTRIES,
    export_report_json,
    format_apply_console,
    format_diff_console,
    format_fields_console,
    format_preview_console,
    format_tables_console,
    format_timestamp,
    load_report_json,
)

__all__ = [
    'MAX_LISTED_ENTRIES',
    'export_report_json',
    'load_report_json',
    'format_timestamp',
    'format_diff_console',
    'format_apply_console',
    'format_tables_console',
    'format_fields_console',
    'format_preview_console',
]
