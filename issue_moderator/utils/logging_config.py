"""
Logging configuration using structlog for structured logging.

Events are rendered as JSON lines by default. The console renderer is meant
for interactive use of the CLI.
"""

import structlog

RENDERERS = ("json", "console")


def configure_logging(log_level: str = "INFO", renderer: str = "json") -> None:
    """Configure structlog for the whole process.

    Every event carries the context variables bound by the runner (the issue
    key while an issue is being moderated), its level and an ISO timestamp.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        renderer: ``"json"`` for JSON lines, ``"console"`` for colored output

    Raises:
        ValueError: If ``renderer`` is unknown.
    """
    if renderer not in RENDERERS:
        raise ValueError(f"Unknown log renderer: {renderer}")

    final_processor = (
        structlog.processors.JSONRenderer() if renderer == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            final_processor,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level.upper()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
