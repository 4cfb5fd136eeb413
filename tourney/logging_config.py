"""Structured logging for the tourney service, using structlog over stdlib logging.

Every record carries the service name and environment. The request middleware
binds the trace id, and the auth dependency adds the verified caller, so
service code only passes event fields such as tournament_id or fee.

- JSON-formatted logs in production
- Console-formatted logs in development
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from tourney.context import RequestContext

SERVICE_NAME = "tourney"

# Bound per request and dropped together when the request ends
REQUEST_KEYS = ("trace_id", "user_id", "is_admin")

# Masked wherever they appear as event keys
REDACTED_KEYS = frozenset({"authorization", "token", "password", "jwt_secret_key"})

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncpg")


def add_service_info(app_env: str) -> Processor:
    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("env", app_env)
        return event_dict

    return processor


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    app_env: str = "development",
) -> None:
    """Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: If True, output JSON logs
        app_env: Application environment, stamped on every record
    """
    use_json = json_logs or app_env == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_info(app_env),
        redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        shared_processors.append(structlog.dev.set_exc_info)
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("tournament_joined", tournament_id="123", fee=50)
    """
    return structlog.get_logger(name)


def bind_request(trace_id: str) -> None:
    """Start a request's log context, discarding anything left from the last one."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(trace_id=trace_id)


def bind_caller(ctx: RequestContext) -> None:
    """Tag the rest of the request's records with the verified caller."""
    structlog.contextvars.bind_contextvars(user_id=ctx.user_id, is_admin=ctx.is_admin)


def unbind_request() -> None:
    structlog.contextvars.unbind_contextvars(*REQUEST_KEYS)
