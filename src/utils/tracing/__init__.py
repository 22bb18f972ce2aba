"""
OpenTelemetry tracing for Base table sync.

Spans cover every table store request (CLIENT), reconciliation runs and
apply runs (INTERNAL). Exporters are opt-in; see tracer.initialize_tracing.
"""

from .context import add_span_event, trace_http_request, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "trace_http_request",
    "add_span_event",
]
