"""structlog setup for Lambda and HTTP processes.

Every line carries a ``correlation_id``: the X-Request-ID of an HTTP request
(asgi-correlation-id), or the Lambda ``aws_request_id`` bound for the length
of one invocation with ``invocation_context``. Stdlib loggers (botocore,
SQLAlchemy) go through the same processors, so CloudWatch receives one JSON
shape for everything.
"""

import logging
import logging.config
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from asgi_correlation_id.context import correlation_id

# Chatty libraries we only want to hear from when something is wrong
QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "sqlalchemy.engine", "asyncio")


def add_correlation_id(logger, method, event_dict):
    """Fill correlation_id from the HTTP request when nothing bound one already."""
    if "correlation_id" not in event_dict:
        cid = correlation_id.get(None)
        if cid:
            event_dict["correlation_id"] = cid
    return event_dict


def _service_field(service: str):
    def add_service(logger, method, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


def shared_processors(service: str) -> list:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        _service_field(service),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_structlog(log_level: str = "INFO", json_logs: bool = True, service: str = "event-tracking") -> None:
    """Route structlog and stdlib logging through one renderer.

    Call once per execution environment, before the first log call;
    structlog caches bound loggers on first use.
    """
    processors = shared_processors(service)

    if json_logs:
        # Tracebacks become a string field instead of a multi-line dump
        final = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final = [structlog.dev.ConsoleRenderer()]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
                "foreign_pre_chain": processors,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level.upper()},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def invocation_context(lambda_context: Any = None, **fields: Any) -> Iterator[None]:
    """Bind the Lambda request id (as correlation_id) and extra fields for one invocation."""
    bound = {"correlation_id": getattr(lambda_context, "aws_request_id", None), **fields}
    function_name = getattr(lambda_context, "function_name", None)
    if function_name:
        bound["function_name"] = function_name
    with structlog.contextvars.bound_contextvars(**bound):
        yield
