"""Structlog processor for OpenTelemetry trace context injection."""

from typing import Any

from advisory.infrastructure.observability.tracing import current_trace_ids


def add_trace_context(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Attach the active ``trace_id`` and ``span_id`` to a log event.

    Events logged outside a recording span are returned unchanged, so the
    processor is safe to keep in the chain when tracing is disabled.
    """
    ids = current_trace_ids()
    if ids is not None:
        event_dict["trace_id"], event_dict["span_id"] = ids
    return event_dict
