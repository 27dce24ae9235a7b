"""
Structured logging for the API and the reminder cron.

Every log line carries the correlation id of the request (or cron tick) it
belongs to, bound through structlog's contextvars. Client phone numbers and
email addresses are masked before rendering.
"""
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Request

CONTACT_KEYS = ("to", "phone", "email", "recipient")
_EMAIL = re.compile(r"^([^@]{0,2})[^@]*(@.+)$")


def mask_contact(value: str) -> str:
    """'+34600111222' -> '***1222', 'laura@example.com' -> 'la***@example.com'"""
    match = _EMAIL.match(value)
    if match:
        return f"{match.group(1)}***{match.group(2)}"
    return f"***{value[-4:]}" if len(value) > 4 else "***"


def mask_contacts(logger, method_name, event_dict):
    for key in CONTACT_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and value:
            event_dict[key] = mask_contact(value)
    return event_dict


class TruncatingProcessor:
    """Keep error and message fields to a bounded length."""

    def __init__(self, max_length: int = 200):
        self.max_length = max_length

    def __call__(self, logger, method_name, event_dict):
        for key in ('message', 'error'):
            if key in event_dict:
                event_dict[key] = str(event_dict[key])[:self.max_length]
        return event_dict


def setup_logging(debug: bool = False, max_log_length: int = 200, level: str = "INFO"):
    """Console output in development, one JSON object per line everywhere else."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        mask_contacts,
        TruncatingProcessor(max_length=max_log_length),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=log_level, format="%(message)s")


def get_logger(name: str = __name__):
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: Optional[str] = None, **context) -> str:
    """Start a new log context (request or cron tick) and return its id."""
    correlation_id = correlation_id or uuid.uuid4().hex[:8]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id, **context)
    return correlation_id


class LoggingMiddleware:
    """Binds a correlation id per request and logs slow or failed requests."""

    def __init__(self, log_requests: bool = False, log_responses: bool = False,
                 slow_threshold: float = 2.0):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.slow_threshold = slow_threshold
        self.logger = get_logger("inkgest.http")

    async def __call__(self, request: Request, call_next):
        correlation_id = set_correlation_id(
            request.headers.get("X-Correlation-ID"),
            endpoint=request.url.path,
            method=request.method,
        )
        request.state.correlation_id = correlation_id
        started = datetime.now(timezone.utc)

        if self.log_requests:
            self.logger.info("request_start", query_params=dict(request.query_params))

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "request_error",
                error=str(e),
                error_type=type(e).__name__,
                duration=round((datetime.now(timezone.utc) - started).total_seconds(), 3),
            )
            raise

        duration = (datetime.now(timezone.utc) - started).total_seconds()
        slow = duration > self.slow_threshold
        if self.log_responses or slow or response.status_code >= 400:
            self.logger.info("request_complete", status_code=response.status_code,
                             duration=round(duration, 3), slow=slow)

        response.headers["X-Correlation-ID"] = correlation_id
        return response
