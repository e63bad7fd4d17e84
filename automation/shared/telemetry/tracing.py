"""Span helpers for engine, dispatcher and query entry points."""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

P = ParamSpec("P")
R = TypeVar("R")

_TRACER_NAME = "funnelly.automation"

# Arguments recorded as span attributes. Trigger payloads, action params and
# grants are never recorded.
_RECORDED_ARGS = frozenset({
    "tenant_id", "workflow_id", "execution_id", "event_name",
    "action_index", "action_type", "triggered_by",
})


def _record_args(
    span: trace.Span, names: list[str], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> None:
    for name, value in [*zip(names, args), *kwargs.items()]:
        if name in _RECORDED_ARGS and value is not None:
            span.set_attribute(f"automation.{name}", str(value))


def traced(
    operation_name: str | None = None,
    attributes: dict[str, str | int | float | bool] | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Wrap a coroutine function in a span.

    Positional and keyword arguments whose names are in the recorded set
    become ``automation.<name>`` attributes. Exceptions mark the span as
    error and propagate unchanged; errors the callee handles itself can be
    recorded with set_span_error().

    Args:
        operation_name: Span name (defaults to module.qualname).
        attributes: Static attributes set on every span.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"traced() expects a coroutine function, got {func!r}")
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"
        names = list(inspect.signature(func).parameters)

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = trace.get_tracer(_TRACER_NAME)
            with tracer.start_as_current_span(
                span_name, attributes=attributes, record_exception=False
            ) as span:
                _record_args(span, names, args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    set_span_error(e, span)
                    raise
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span, prefixed with ``automation.``."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(f"automation.{key}", value)


def set_span_error(exception: BaseException, span: trace.Span | None = None) -> None:
    """Mark span (default: the current one) as failed and record exception."""
    span = span or trace.get_current_span()
    if span.is_recording():
        span.set_status(Status(StatusCode.ERROR, str(exception) or type(exception).__name__))
        span.record_exception(exception)
