"""
Utility modules for Base table sync

Provides:
- logging: structured logging setup
- retry: exponential backoff for transient table store failures
- tracing: OpenTelemetry spans
- metrics: Prometheus counters for reconciliation and apply runs
- config: runtime settings from the environment
- vault_client: HashiCorp Vault integration for Base credentials
"""

__version__ = "1.0.0"
__all__ = ["logging", "retry", "tracing", "metrics", "config", "vault_client"]
