"""
REST client for Lark/Feishu Base (bitable v1) authenticated with a
personal base token.

Reads are retried with exponential backoff on transient failures;
writes are sent exactly once and failures surface to the caller.
"""

import logging
from typing import Any

import requests

from utils.config import SyncSettings
from utils.metrics import SyncMetrics, get_sync_metrics
from utils.retry import RETRYABLE_HTTP_STATUSES, is_retryable_api_exception, retry_with_backoff
from utils.tracing import trace_http_request

from .base import RecordPage, TableStore
from .errors import ConfigurationError, TableStoreError
from .models import Field, Record, Table

logger = logging.getLogger(__name__)

API_PREFIX = "open-apis/bitable/v1/apps"

# Vendor error codes worth a readable message
VENDOR_ERROR_MESSAGES = {
    1: "parameter error: check the table ids and field mapping",
    2: "permission denied: check the personal base token's scope",
    30: "field write failed: field type mismatch or field does not exist",
    1254: "rate limited by the table store, retry later",
    1254290: "rate limited by the table store, retry later",
}

RATE_LIMIT_CODES = frozenset({1254, 1254290})


def describe_vendor_error(code: Any, msg: str | None = None) -> str:
    """
    Build a readable message for a vendor error code

    Args:
        code: Numeric code from the response body
        msg: Vendor-supplied message, if any

    Returns:
        Human-readable message
    """
    if code in VENDOR_ERROR_MESSAGES:
        return VENDOR_ERROR_MESSAGES[code]
    return f"table store error ({code}): {msg or 'unknown error'}"


class BitableClient(TableStore):
    """
    TableStore backed by the Base OpenAPI.

    Args:
        base_id: Base (app) token
        personal_token: Personal base token
        settings: Page size, timeout and retry tunables
        session: Optional pre-configured requests session
        metrics: Metrics sink (default: process-wide SyncMetrics)

    Raises:
        ConfigurationError: If credentials are missing
    """

    def __init__(
        self,
        base_id: str,
        personal_token: str,
        settings: SyncSettings | None = None,
        session: requests.Session | None = None,
        metrics: SyncMetrics | None = None,
    ):
        if not base_id or not personal_token:
            raise ConfigurationError("base_id and personal_token are required")

        self.base_id = base_id
        self.settings = settings or SyncSettings()
        self.metrics = metrics or get_sync_metrics()
        self.api_root = f"{self.settings.base_url.rstrip('/')}/{API_PREFIX}/{base_id}"

        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {personal_token}",
            "Content-Type": "application/json; charset=utf-8",
        })

        self._read = retry_with_backoff(
            max_retries=self.settings.max_retries,
            base_delay=self.settings.retry_delay,
            retry_if=is_retryable_api_exception,
        )(self._request)

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send one request and unwrap the ``data`` envelope

        Raises:
            TableStoreError: On transport failure, HTTP error, or non-zero code
        """
        url = f"{self.api_root}/{path}"

        with trace_http_request(method, url, operation=operation):
            try:
                response = self.session.request(
                    method, url, params=params, json=body, timeout=self.settings.timeout
                )
            except requests.RequestException as e:
                self.metrics.record_request(operation, "transport_error")
                raise TableStoreError(
                    f"{operation} failed: {e}",
                    retryable=isinstance(e, (requests.ConnectionError, requests.Timeout)),
                ) from e

            try:
                payload = response.json()
            except ValueError:
                payload = None

            code = payload.get("code", 0) if isinstance(payload, dict) else None

            if response.status_code >= 400 or not isinstance(payload, dict) or code != 0:
                self.metrics.record_request(operation, "error")
                raise self._error_from_response(operation, response, payload, code)

            self.metrics.record_request(operation, "ok")
            return payload.get("data") or {}

    def _error_from_response(
        self,
        operation: str,
        response: requests.Response,
        payload: Any,
        code: int | None,
    ) -> TableStoreError:
        if isinstance(payload, dict) and code not in (None, 0):
            message = describe_vendor_error(code, payload.get("msg"))
        elif isinstance(payload, dict) and payload.get("sc") is not None:
            # Gateway-level failures come back as {"e": 0, "sc": <code>}
            code = payload.get("sc")
            message = describe_vendor_error(code)
        else:
            message = f"HTTP {response.status_code}"

        retryable = code in RATE_LIMIT_CODES or response.status_code in RETRYABLE_HTTP_STATUSES
        logger.debug(f"{operation} failed: {message}", extra={"payload": payload})

        return TableStoreError(
            f"{operation} failed: {message}",
            code=code,
            payload=payload if payload is not None else response.text,
            status_code=response.status_code,
            retryable=retryable,
        )

    def _paginate(self, path: str, operation: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page_token = None
        while True:
            params: dict[str, Any] = {"page_size": self.settings.page_size}
            if page_token:
                params["page_token"] = page_token
            data = self._read("GET", path, operation, params=params)
            items.extend(data.get("items") or [])
            page_token = data.get("page_token")
            if not data.get("has_more") or not page_token:
                return items

    def list_tables(self) -> list[Table]:
        return [Table.from_api(item) for item in self._paginate("tables", "list_tables")]

    def list_fields(self, table_id: str) -> list[Field]:
        items = self._paginate(f"tables/{table_id}/fields", "list_fields")
        return [Field.from_api(item) for item in items]

    def list_records(self, table_id: str, page_token: str | None = None) -> RecordPage:
        params: dict[str, Any] = {"page_size": self.settings.page_size}
        if page_token:
            params["page_token"] = page_token

        data = self._read("GET", f"tables/{table_id}/records", "list_records", params=params)

        next_token = data.get("page_token")
        if "has_more" in data and not data["has_more"]:
            next_token = None

        return RecordPage(
            records=[Record.from_api(item) for item in data.get("items") or []],
            next_page_token=next_token or None,
        )

    def get_record(self, table_id: str, record_id: str) -> Record:
        data = self._read("GET", f"tables/{table_id}/records/{record_id}", "get_record")
        return Record.from_api(data.get("record") or {})

    def create_record(self, table_id: str, fields: dict[str, Any]) -> Record:
        data = self._request(
            "POST", f"tables/{table_id}/records", "create_record", body={"fields": fields}
        )
        return Record.from_api(data.get("record") or {})

    def update_record(self, table_id: str, record_id: str, fields: dict[str, Any]) -> Record:
        data = self._request(
            "PUT",
            f"tables/{table_id}/records/{record_id}",
            "update_record",
            body={"fields": fields},
        )
        return Record.from_api(data.get("record") or {"record_id": record_id})
