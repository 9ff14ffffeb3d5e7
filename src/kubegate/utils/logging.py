"""structlog setup and the resource-scoped logging context.

Log lines emitted while a resource is being admitted or translated carry
`resource_kind`, `resource_namespace` and `resource_name` through structlog
contextvars, so helpers deep in translation never take the resource as an
argument just to log it.
"""

import logging
import sys
from typing import Any

import structlog

from kubegate.core.config import LoggingConfig

RESOURCE_KEYS = ("resource_kind", "resource_namespace", "resource_name")


def _renderer(format: str) -> list[Any]:
    if format == "json":
        return [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer()]


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Route structlog and stdlib logging to one stream.

    Calling it again replaces the previous setup, including handlers
    installed on the root logger.

    Args:
        config: Level, format (json or console) and output (stdout or stderr);
            defaults to INFO json on stdout
    """
    if config is None:
        config = LoggingConfig()
    log_level = getattr(logging, config.level.upper(), logging.INFO)
    stream = sys.stdout if config.output == "stdout" else sys.stderr

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level, force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderer(config.format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_resource(kind: str, namespace: str, name: str) -> None:
    """Attach a resource's coordinates to every following log line.

    Args:
        kind: Resource kind (ApisixRoute, Gateway, ...)
        namespace: Resource namespace; empty for cluster-scoped kinds
        name: Resource name
    """
    structlog.contextvars.bind_contextvars(
        **dict(zip(RESOURCE_KEYS, (kind, namespace, name), strict=True))
    )


def clear_resource() -> None:
    """Drop the coordinates set by `bind_resource`, keeping other context."""
    structlog.contextvars.unbind_contextvars(*RESOURCE_KEYS)


def log_operation(logger: structlog.BoundLogger, operation: str, **kwargs: Any) -> None:
    """Emit `operation_<operation>` at info level."""
    logger.info(f"operation_{operation}", **kwargs)


def log_error(
    logger: structlog.BoundLogger,
    error: Exception,
    operation: str | None = None,
    **kwargs: Any,
) -> None:
    """Log a failed cluster read or translation step.

    The event is always `error_occurred`; the exception class and message
    go in `error_type` and `error_message`, with the traceback attached.

    Args:
        logger: Logger instance
        error: The exception being reported
        operation: Name of the step that failed, such as `list_ingresses`
        **kwargs: Additional context fields
    """
    context = {"error_type": type(error).__name__, "error_message": str(error), **kwargs}
    if operation:
        context["operation"] = operation

    logger.error("error_occurred", **context, exc_info=True)
