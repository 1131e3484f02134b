"""Structured logging setup shared by the Lambda handler and the HTTP app."""

import logging

import structlog


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging for the forwarder."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Lambda installs its own root handler, so basicConfig is a no-op there
    logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # botocore is noisy at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format.lower() == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
