"""
structlog setup for the bot process.

JSON lines in production, colored console output when
``ENVIRONMENT=development``. Request-scoped fields (request id, route)
are bound through contextvars so every event logged while handling a
request carries them.
"""
import logging
import sys
import uuid
from typing import Any, Optional

import structlog

# aiohttp's own access logger is replaced by log_request()
QUIET_LOGGERS = ("aiohttp.access",)


def setup_logging(level: str = "INFO", environment: str = "production") -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL; unknown names mean INFO
        environment: ``development`` for console rendering, anything else JSON
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # aiohttp and asyncio log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    renderer = (
        structlog.dev.ConsoleRenderer()
        if environment == "development"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Return a structlog logger named after the calling module.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("bot_installed", group_id="g-1")
    """
    return structlog.get_logger(name)


def bind_request_context(method: str, path: str, request_id: Optional[str] = None) -> str:
    """
    Bind request fields for all events logged by the current task.

    Returns:
        The request id (generated when not given)
    """
    request_id = request_id or uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(
        request_id=request_id, method=method, path=path
    )
    return request_id


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def redact(secret: Optional[str], keep: int = 8) -> str:
    """Shorten a credential for logging: first ``keep`` characters then ``...``."""
    if not secret:
        return "<unset>"
    return f"{secret[:keep]}..."


def log_request(status: int, duration_ms: float, **extra: Any) -> None:
    """
    Write the access-log line for a finished request.

    Method, path and request id come from bind_request_context(). The
    level follows the status: error for 5xx, warning for 4xx, info
    otherwise.

    Example:
        >>> log_request(200, 812.4)
    """
    logger = get_logger("http_access")
    fields = {"status": status, "duration_ms": round(duration_ms, 2), **extra}

    if status >= 500:
        logger.error("http_request", **fields)
    elif status >= 400:
        logger.warning("http_request", **fields)
    else:
        logger.info("http_request", **fields)
