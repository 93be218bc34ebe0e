"""
Shared observability helpers (telemetry, privacy utilities, etc.).

Services import from this package to get consistent JSON logging, request-ID
propagation, and redaction of free-text fields before records reach the logs.
"""

from .privacy import LOGGABLE_RECORD_FIELDS, REDACTED, redact_fields
from .telemetry import (
    CORRELATION_ID_HEADER,
    DEFAULT_OTLP_ENDPOINT,
    RequestContextToken,
    TelemetryConfig,
    bind_request_context,
    ensure_request_id,
    load_telemetry_config,
    log_event,
    reset_request_context,
    setup_telemetry,
)

__all__ = [
    "LOGGABLE_RECORD_FIELDS",
    "REDACTED",
    "redact_fields",
    "CORRELATION_ID_HEADER",
    "DEFAULT_OTLP_ENDPOINT",
    "RequestContextToken",
    "TelemetryConfig",
    "bind_request_context",
    "ensure_request_id",
    "load_telemetry_config",
    "log_event",
    "reset_request_context",
    "setup_telemetry",
]
