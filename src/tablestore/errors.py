"""
Exceptions raised by the table store layer and the sync core.
"""

from typing import Any


class ConfigurationError(ValueError):
    """Caller input that makes a run impossible (missing ids, bad filters)."""


class TableStoreError(RuntimeError):
    """
    A table store call failed.

    Attributes:
        code: Vendor error code from the response body, if any
        payload: Raw response body kept for diagnostics
        status_code: HTTP status, if a response was received
        retryable: Whether repeating the same call may succeed
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        payload: Any = None,
        status_code: int | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.payload = payload
        self.status_code = status_code
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "payload": self.payload,
        }
