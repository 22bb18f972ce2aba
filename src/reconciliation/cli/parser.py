"""
Command-line argument parser configuration.

This module sets up the argument parser for the basesync CLI tool,
defining all commands and their options.
"""

import argparse

from utils.vault_client import DEFAULT_SECRET_PATH


def _add_table_arguments(parser: argparse.ArgumentParser, target: bool = True) -> None:
    parser.add_argument(
        '--source',
        required=True,
        help='Source table id (tbl...) or table name'
    )
    if target:
        parser.add_argument(
            '--target',
            required=True,
            help='Target table id (tbl...) or table name'
        )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='basesync',
        description="Diff and copy records between Lark/Feishu Base tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check credentials and list the Base's tables
  basesync --base-id bascnXXXX --token pt-XXXX tables

  # Show how source fields auto-map onto the target table
  basesync fields --source Orders --target tblTarget00001

  # Analyze differences and save them for review
  basesync analyze --source Orders --target "Orders Copy" --primary-key 订单编号 --output diff.json

  # Apply a reviewed analysis (creates new, updates modified records)
  basesync apply --input diff.json

  # Copy only records matching the filters in filters.json
  basesync copy --source Orders --target "Orders Copy" --filters filters.json

  # Copy with diff: analyze and apply in one step
  basesync copy --source Orders --target "Orders Copy" --diff

  # Use Vault for credentials
  basesync --use-vault analyze --source Orders --target "Orders Copy"

Credentials are read from --base-id/--token, FEISHU_BASE_ID and
FEISHU_PERSONAL_BASE_TOKEN, or Vault (--use-vault).
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument('--log-file', help='Also write logs to this file (rotated)')
    parser.add_argument('--base-id', help='Base id (default: FEISHU_BASE_ID)')
    parser.add_argument('--token', help='Personal base token (default: FEISHU_PERSONAL_BASE_TOKEN)')
    parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault'
    )
    parser.add_argument(
        '--vault-path',
        default=DEFAULT_SECRET_PATH,
        help=f'Vault KV path holding base_id and personal_token (default: {DEFAULT_SECRET_PATH})'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Tables command ==========
    subparsers.add_parser('tables', help='List tables (also verifies credentials)')

    # ========== Fields command ==========
    fields_parser = subparsers.add_parser('fields', help='Show source -> target field matches')
    _add_table_arguments(fields_parser)

    # ========== Analyze command ==========
    analyze_parser = subparsers.add_parser('analyze', help='Reconcile two tables (read-only)')
    _add_table_arguments(analyze_parser)
    analyze_parser.add_argument(
        '--primary-key',
        help='Source field id or name to match records on (default: auto-detect)'
    )
    analyze_parser.add_argument(
        '--mapping',
        help='JSON file with an explicit {source_field_id: target_field_id} mapping'
    )
    analyze_parser.add_argument(
        '--output',
        help='Write the full analysis to this JSON file'
    )
    analyze_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )

    # ========== Apply command ==========
    apply_parser = subparsers.add_parser('apply', help='Apply a saved analysis')
    apply_parser.add_argument(
        '--input',
        required=True,
        help='Analysis JSON written by "analyze --output"'
    )
    apply_parser.add_argument('--source', help='Source table (default: from the analysis)')
    apply_parser.add_argument('--target', help='Target table (default: from the analysis)')
    apply_parser.add_argument(
        '--mapping',
        help='JSON file with an explicit mapping (default: the analysis mapping)'
    )

    # ========== Copy command ==========
    copy_parser = subparsers.add_parser('copy', help='Copy records into the target table')
    _add_table_arguments(copy_parser)
    copy_parser.add_argument('--mapping', help='JSON file with an explicit field mapping')
    copy_parser.add_argument('--filters', help='JSON file with a list of filter conditions')
    copy_parser.add_argument(
        '--record-ids',
        help='Comma-separated source record ids (rec...) to copy'
    )
    copy_parser.add_argument(
        '--diff',
        action='store_true',
        help='Reconcile first; create new and update modified records only'
    )
    copy_parser.add_argument(
        '--primary-key',
        help='Primary key for --diff (default: auto-detect)'
    )

    # ========== Preview command ==========
    preview_parser = subparsers.add_parser('preview', help='Count records matching filters')
    _add_table_arguments(preview_parser, target=False)
    preview_parser.add_argument(
        '--filters',
        required=True,
        help='JSON file with a list of filter conditions'
    )

    return parser
