"""
HashiCorp Vault client for Base credentials.

Reads the Base id and personal base token from a KV v2 secret so they
never need to appear on a command line or in shell history.
"""

import logging
import os
import re
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_SECRET_PATH = "secret/lark/base"
REQUIRED_CREDENTIAL_KEYS = ("base_id", "personal_token")

_SAFE_PATH = re.compile(r"^[a-zA-Z0-9/_-]+$")

# 200 active, 429 standby, 472/473 replication or performance standby
_HEALTHY_STATUSES = (200, 429, 472, 473)


def kv2_data_path(secret_path: str) -> str:
    """
    Validate a KV path and rewrite it to the ``<mount>/data/<path>`` form

    Raises:
        ValueError: Empty path, traversal, or characters outside [a-zA-Z0-9/_-]
    """
    if not secret_path or not isinstance(secret_path, str):
        raise ValueError("secret_path must be a non-empty string")
    if ".." in secret_path or secret_path.startswith("//"):
        raise ValueError(f"Invalid secret_path: {secret_path} (path traversal)")
    if not _SAFE_PATH.match(secret_path):
        raise ValueError(
            f"Invalid secret_path: {secret_path} "
            "(allowed: letters, digits, '/', '_' and '-')"
        )

    if "/data/" in secret_path:
        return secret_path
    mount, _, rest = secret_path.partition("/")
    return f"{mount}/data/{rest}" if rest else f"{mount}/data"


class VaultClient:
    """
    Minimal KV v2 reader

    Args:
        vault_addr: Server address (default: VAULT_ADDR)
        vault_token: Token (default: VAULT_TOKEN)
        namespace: Vault Enterprise namespace
        timeout: Request timeout in seconds

    Raises:
        ValueError: Address or token missing from both arguments and environment
    """

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
        timeout: float = 10.0,
    ):
        vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        if not vault_addr:
            raise ValueError("Vault address not provided (pass vault_addr or set VAULT_ADDR)")
        if not self.vault_token:
            raise ValueError("Vault token not provided (pass vault_token or set VAULT_TOKEN)")

        self.vault_addr = vault_addr.rstrip("/")
        self.namespace = namespace
        self.timeout = timeout
        self.headers = {"X-Vault-Token": self.vault_token, "Content-Type": "application/json"}
        if namespace:
            self.headers["X-Vault-Namespace"] = namespace

    def get_secret(self, secret_path: str) -> dict[str, Any]:
        """
        Read the data of a KV v2 secret

        Raises:
            ValueError: Invalid path, secret missing, or secret empty
            requests.HTTPError: Any other non-2xx answer
        """
        data_path = kv2_data_path(secret_path)
        url = f"{self.vault_addr}/v1/{data_path}"
        logger.debug(f"Fetching secret from: {url}")

        response = requests.get(url, headers=self.headers, timeout=self.timeout)
        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {data_path}")
        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {data_path}")
        return secret_data

    def get_base_credentials(self, secret_path: str = DEFAULT_SECRET_PATH) -> dict[str, str]:
        """Return ``base_id`` and ``personal_token`` from the secret, nothing else"""
        secret_data = self.get_secret(secret_path)

        missing = [key for key in REQUIRED_CREDENTIAL_KEYS if not secret_data.get(key)]
        if missing:
            raise ValueError(f"Missing required fields in secret: {', '.join(missing)}")

        logger.info(f"Fetched Base credentials from Vault ({secret_path})")
        return {key: secret_data[key] for key in REQUIRED_CREDENTIAL_KEYS}

    def health_check(self) -> bool:
        """True when Vault answers as initialized and unsealed"""
        try:
            response = requests.get(f"{self.vault_addr}/v1/sys/health", timeout=5)
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False
        return response.status_code in _HEALTHY_STATUSES
