"""
Command-line interface for Base table sync.

Available commands:
- tables: List tables and verify credentials
- fields: Show how source fields map onto the target
- analyze: Reconcile two tables without writing
- apply: Apply a saved analysis
- copy: Copy all, filtered, selected, or diff-based records
- preview: Count records matching a filter list
"""

import sys

from utils.tracing import shutdown_tracing

from .commands import (
    cmd_analyze,
    cmd_apply,
    cmd_copy,
    cmd_fields,
    cmd_preview,
    cmd_tables,
)
from .credentials import build_client, get_credentials_from_vault_or_env, setup_logging
from .parser import create_parser

COMMANDS = {
    'tables': cmd_tables,
    'fields': cmd_fields,
    'analyze': cmd_analyze,
    'apply': cmd_apply,
    'copy': cmd_copy,
    'preview': cmd_preview,
}


def main() -> None:
    """Main entry point for the basesync CLI"""
    parser = create_parser()
    args = parser.parse_args()

    # Setup logging
    setup_logging(args.log_level, args.log_file)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        command(args)
    finally:
        shutdown_tracing()


__all__ = [
    'main',
    'setup_logging',
    'get_credentials_from_vault_or_env',
    'build_client',
    'cmd_tables',
    'cmd_fields',
    'cmd_analyze',
    'cmd_apply',
    'cmd_copy',
    'cmd_preview',
    'create_parser',
]


if __name__ == '__main__':
    main()
