"""Observability module providing OpenTelemetry tracing and structlog integration."""

from advisory.infrastructure.observability.setup import (
    configure_logging,
    init_observability,
    shutdown_observability,
)
from advisory.infrastructure.observability.structlog_processor import (
    add_trace_context,
)
from advisory.infrastructure.observability.tracing import get_tracer, traced

__all__ = [
    "add_trace_context",
    "configure_logging",
    "get_tracer",
    "init_observability",
    "shutdown_observability",
    "traced",
]
