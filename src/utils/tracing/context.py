"""
Spans for sync runs and table store calls.

Attribute values are stringified and None values are dropped. A failing
block marks its span as errored, records the vendor error code and HTTP
status when the exception carries them, and re-raises.
"""

from contextlib import AbstractContextManager, contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from .tracer import get_tracer


def _set_attributes(span: Span, attributes: dict[str, Any]) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, str(value))


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run a block inside a span.

    Args:
        operation_name: Span name
        kind: Span kind (INTERNAL, CLIENT, ...)
        **attributes: Span attributes

    Yields:
        The span, for attributes only known at the end of the block

    Example:
        >>> with trace_operation("reconcile_records", source_count=120) as span:
        ...     diff = reconcile(...)
        ...     span.set_attribute("diff.new", len(diff.new))
    """
    with get_tracer().start_as_current_span(operation_name, kind=kind) as span:
        _set_attributes(span, attributes)

        try:
            yield span
        except Exception as e:
            _set_attributes(span, {
                "error.type": type(e).__name__,
                "tablestore.error_code": getattr(e, "code", None),
                "http.status_code": getattr(e, "status_code", None),
            })
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def trace_http_request(method: str, url: str, operation: str, **extra_attrs) -> AbstractContextManager:
    """
    Client span around one table store request, named after the operation.

    Example:
        >>> with trace_http_request("GET", url, operation="list_fields"):
        ...     response = session.request("GET", url)
    """
    return trace_operation(
        f"tablestore.{operation}",
        kind=trace.SpanKind.CLIENT,
        **{
            "http.method": method,
            "http.url": url,
            "tablestore.operation": operation,
            **extra_attrs,
        }
    )


def add_span_event(name: str, **attributes) -> None:
    """Attach an event to the current span, if one is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(
            name, attributes={k: str(v) for k, v in attributes.items() if v is not None}
        )
