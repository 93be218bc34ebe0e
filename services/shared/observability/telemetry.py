"""
Telemetry bootstrap for the MoneyMap services.

`setup_telemetry` installs a JSON log handler on the root logger whose records
carry the service name, the inbound request ID and, with tracing enabled, the
active trace/span IDs. Tracing itself (OTLP over HTTP, optional console export)
is switched on through environment flags read by `load_telemetry_config`.

Application code logs events as dicts through `log_event`, which stamps the
request ID bound for the current request.
"""

from __future__ import annotations

import logging
import os
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, SpanContext
from pythonjsonlogger import jsonlogger

CORRELATION_ID_HEADER = "x-request-id"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4318/v1/traces"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(service_name)s %(request_id)s %(trace_id)s %(span_id)s"

RequestContextToken = Token

_logging_configured = False
_request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)


@dataclass(frozen=True, slots=True)
class TelemetryConfig:
    service_name: str
    log_level: int
    traces_enabled: bool
    console_export: bool
    otlp_endpoint: str


def load_telemetry_config(service_name: str) -> TelemetryConfig:
    """
    Read observability flags from the environment.

    `OTEL_SERVICE_NAME` overrides the service label; an unknown `LOG_LEVEL`
    falls back to INFO.
    """

    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").strip().upper())
    return TelemetryConfig(
        service_name=os.getenv("OTEL_SERVICE_NAME", "").strip() or service_name,
        log_level=level if isinstance(level, int) else logging.INFO,
        traces_enabled=_parse_bool(os.getenv("ENABLE_TELEMETRY")),
        console_export=_parse_bool(os.getenv("OTEL_CONSOLE_EXPORT")),
        otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "").strip() or DEFAULT_OTLP_ENDPOINT,
    )


def setup_telemetry(app: FastAPI, service_name: str, config: TelemetryConfig | None = None) -> TelemetryConfig:
    """
    Configure JSON logging, and tracing when enabled, for a FastAPI app.

    Logging is configured once per process; calling this again (for example
    when tests re-import the app) only re-attaches instrumentation.
    """

    config = config or load_telemetry_config(service_name)
    _configure_logging(config)

    if config.traces_enabled:
        _configure_tracing(config)
        FastAPIInstrumentor.instrument_app(app)
        LoggingInstrumentor().instrument(set_logging_format=False)

    app.state.telemetry = config
    return config


def ensure_request_id(request: Request | None, header_name: str = CORRELATION_ID_HEADER) -> str:
    """Return the inbound x-request-id, or mint one and remember it on `request.state`."""

    if request is not None:
        existing = request.headers.get(header_name) or getattr(request.state, "request_id", None)
        if existing:
            request.state.request_id = existing
            return existing

    request_id = os.getenv("REQUEST_ID_PREFIX", "") + str(uuid4())
    if request is not None:
        request.state.request_id = request_id
    return request_id


def bind_request_context(request_id: str | None) -> RequestContextToken:
    return _request_id_ctx_var.set(request_id)


def reset_request_context(token: RequestContextToken | None) -> None:
    if token is not None:
        _request_id_ctx_var.reset(token)


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """
    Emit a structured `{"event": ..., "request_id": ...}` log record.

    The request ID comes from the bound request context unless passed explicitly.
    """

    payload: dict[str, Any] = {"event": event}
    payload["request_id"] = fields.pop("request_id", None) or _request_id_ctx_var.get()
    payload.update(fields)
    logger.log(level, payload)


def _configure_logging(config: TelemetryConfig) -> None:
    global _logging_configured
    if _logging_configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    handler.addFilter(_RequestContextFilter(config.service_name, config.traces_enabled))

    logging.basicConfig(level=config.log_level, handlers=[handler], force=True)
    _logging_configured = True


def _configure_tracing(config: TelemetryConfig) -> None:
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: config.service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint)))
    if config.console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)


def _parse_bool(raw: str | None) -> bool:
    return (raw or "").strip().lower() in {"1", "true", "yes", "on"}


def _current_trace_ids() -> tuple[str | None, str | None]:
    span = trace.get_current_span()
    span_context = span.get_span_context() if isinstance(span, Span) else None
    if not isinstance(span_context, SpanContext) or not span_context.is_valid:
        return None, None
    return format(span_context.trace_id, "032x"), format(span_context.span_id, "016x")


class _RequestContextFilter(logging.Filter):
    """Stamps service, request and trace identifiers onto every record."""

    def __init__(self, service_name: str, traces_enabled: bool) -> None:
        super().__init__()
        self._service_name = service_name
        self._traces_enabled = traces_enabled

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self._service_name
        record.request_id = _request_id_ctx_var.get()
        record.trace_id, record.span_id = _current_trace_ids() if self._traces_enabled else (None, None)
        return True
