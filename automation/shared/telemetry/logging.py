"""Logging configuration for the automation worker.

Every record carries the active OpenTelemetry trace and span ids, so log
lines from one execution run can be joined with its spans.
"""

import logging
import sys

from opentelemetry import trace

from automation.core.config import Settings, get_settings

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [trace=%(trace_id)s span=%(span_id)s] %(message)s"
)

# Per-request INFO lines from the webhook client drown out engine logs.
_QUIET_LOGGERS = ("httpx", "httpcore")


class TraceContextFilter(logging.Filter):
    """Attach trace_id/span_id of the current span ("-" outside any span)."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = trace.get_current_span().get_span_context()
        if context.is_valid:
            record.trace_id = format(context.trace_id, "032x")
            record.span_id = format(context.span_id, "016x")
        else:
            record.trace_id = "-"
            record.span_id = "-"
        return True


def resolve_level(settings: Settings) -> int:
    """log_level wins when set; otherwise DEBUG in debug mode, else INFO."""
    if settings.log_level:
        return logging.getLevelNamesMapping()[settings.log_level]
    return logging.DEBUG if settings.debug else logging.INFO


def setup_logging(settings: Settings | None = None) -> None:
    """Configure process-wide logging to stdout.

    Safe to call more than once; the root handlers are replaced.
    """
    settings = settings or get_settings()
    level = resolve_level(settings)
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(TraceContextFilter())
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler], force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
