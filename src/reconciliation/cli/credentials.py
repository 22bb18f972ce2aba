"""
Credential management and logging setup for CLI.

This module resolves Base credentials from arguments, environment
variables or Vault, builds the table store client, and configures
logging for the CLI application.
"""

import argparse
import logging
import os
import sys

import requests

from tablestore import BitableClient
from utils.config import SyncSettings
from utils.logging import setup_logging as configure_logging
from utils.vault_client import VaultClient

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO", log_file: str | None = None) -> None:
    """
    Setup logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional rotating log file
    """
    configure_logging(
        level=log_level,
        log_file=log_file or os.getenv("LOG_FILE"),
        json_format=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
    )


def get_credentials_from_vault_or_env(args: argparse.Namespace) -> tuple[str, str]:
    """
    Get Base credentials from Vault or environment/args

    Args:
        args: Parsed command-line arguments

    Returns:
        Tuple of (base_id, personal_token)
    """
    if args.use_vault:
        try:
            vault_client = VaultClient()
            creds = vault_client.get_base_credentials(args.vault_path)
        except (ValueError, requests.RequestException) as e:
            logger.error(f"Failed to fetch credentials from Vault: {e}")
            sys.exit(1)

        logger.info("Successfully fetched credentials from Vault")
        return creds["base_id"], creds["personal_token"]

    base_id = args.base_id or os.getenv("FEISHU_BASE_ID")
    token = args.token or os.getenv("FEISHU_PERSONAL_BASE_TOKEN")

    if not base_id:
        logger.error("Base id not provided (--base-id or FEISHU_BASE_ID)")
        sys.exit(1)
    if not token:
        logger.error("Personal base token not provided (--token or FEISHU_PERSONAL_BASE_TOKEN)")
        sys.exit(1)

    return base_id, token


def build_client(args: argparse.Namespace) -> tuple[BitableClient, SyncSettings]:
    """
    Build the table store client for a CLI run

    Returns:
        Tuple of (client, settings)
    """
    try:
        settings = SyncSettings.from_env()
    except ValueError as e:
        logger.error(f"Invalid settings: {e}")
        sys.exit(1)

    base_id, token = get_credentials_from_vault_or_env(args)
    return BitableClient(base_id, token, settings=settings), settings
