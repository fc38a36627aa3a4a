"""Structured logging configuration using structlog.

The runtime logs through standard library loggers
(``logging.getLogger(__name__)``); structlog renders every record, JSON lines
when deployed and colored console output locally. Request-scoped values such
as the correlation ID are bound with :mod:`structlog.contextvars` and reach
the event production and after-request tasks spawned by the runtime, since
asyncio tasks copy the current context.
"""

import logging
import sys

import structlog

from chat_runtime.platform.constants import SERVICE_NAME, SERVICE_VERSION

NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "LiteLLM Router", "uvicorn.access")


def add_service_info(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Processor stamping every entry with the service name and version."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", SERVICE_VERSION)
    return event_dict


def shared_processors() -> list[structlog.types.Processor]:
    """Processors applied to structlog and standard library records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_service_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(log_level: str, json_output: bool = True) -> None:
    """Route all logging through structlog.

    Args:
        log_level: Root logging level (INFO, DEBUG, etc.)
        json_output: True for JSON lines, False for console output
    """
    processors = shared_processors()
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, for callers that prefer key-value logging."""
    return structlog.get_logger(name)
