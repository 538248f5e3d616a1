"""Observability helpers: structlog JSON + request context."""

import logging
import time
import typing
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars
from structlog.processors import TimeStamper
from structlog.stdlib import ExtraAdder, ProcessorFormatter

from core.utils.logging import get_logger


REDACTED = "[redacted]"

# Event keys that may carry raw credentials
SECRET_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "client_secret",
        "code",
        "code_verifier",
        "clerk_token",
        "authorization",
    }
)


def redact_secrets(_logger, _method_name: str, event_dict: dict) -> dict:
    """Replace credential values in a log event."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_structlog_json(level: int | str = logging.INFO) -> None:
    """Route structlog and stdlib logging through one JSON renderer."""
    shared_processors = [
        structlog.processors.add_log_level,
        redact_secrets,
        TimeStamper(fmt="iso", utc=True),
        ExtraAdder(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    formatter = ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request_id/method/path to logs and set X-Request-ID."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:
        """Constructor."""
        super().__init__(app)
        self.header_name = header_name
        self._logger = get_logger(__name__)

    async def dispatch(
        self,
        request: Request,
        call_next: typing.Callable[[Request], typing.Awaitable[Response]],
    ):
        """Bind request_id to logs and set X-Request-ID header."""
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.perf_counter()
        try:
            self._logger.info(
                "http.request.start",
                client_host=getattr(request.client, "host", None),
            )
            response = await call_next(request)
            self._logger.info(
                "http.request.end",
                status_code=response.status_code,
                duration_ms=int((time.perf_counter() - start) * 1000),
                client_id=getattr(request.state, "client_id", None),
            )
        finally:
            clear_contextvars()

        response.headers[self.header_name] = request_id
        return response


def current_request_id(default: str | None = None) -> str | None:
    """Return bound request_id or default if missing."""
    return get_contextvars().get("request_id") or default
