"""Tracing utilities for instrumenting advisory with OpenTelemetry."""

import asyncio
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode, Tracer

P = ParamSpec("P")
R = TypeVar("R")


def get_tracer(name: str) -> Tracer:
    """Get a tracer for the given module name.

    Args:
        name: Module name, typically __name__.

    Returns:
        A Tracer instance for creating spans.
    """
    return trace.get_tracer(name)


def current_trace_ids() -> tuple[str, str] | None:
    """Return the active ``(trace_id, span_id)`` pair as hex strings.

    Returns:
        A 32-character trace id and a 16-character span id, or None when
        there is no valid span in the current context.
    """
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return (
        format(span_context.trace_id, "032x"),
        format(span_context.span_id, "016x"),
    )


def traced(
    span_name: str,
    *,
    attributes: dict[str, str | int | float | bool] | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator to run a function inside a named span.

    Works with both sync and async functions. Exceptions are recorded on
    the span, which is marked as failed, and then re-raised unchanged.

    Args:
        span_name: Name for the span.
        attributes: Static attributes to add to the span.

    Example:
        @traced("ingest.parse_epub")
        def parse_epub(path): ...
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        tracer = get_tracer(fn.__module__)

        def start_span() -> Any:
            return tracer.start_as_current_span(
                span_name,
                attributes=attributes,
                record_exception=True,
                set_status_on_exception=True,
            )

        if asyncio.iscoroutinefunction(fn):

            @wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                with start_span() as span:
                    result = await fn(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result

            return async_wrapper  # type: ignore[return-value]

        @wraps(fn)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with start_span() as span:
                result = fn(*args, **kwargs)
                span.set_status(Status(StatusCode.OK))
                return result

        return sync_wrapper

    return decorator
