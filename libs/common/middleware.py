"""Request context middleware for the club store API.

Every request gets a request id (taken from ``X-Request-ID`` when the
gateway supplies one), which is bound to the logging context and echoed back
on the response. Completed requests are logged with status and duration;
rejected ones (4xx/5xx) at warning level so pickup desk conflicts and
inventory rejections stand out.

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app)
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64
QUIET_PATHS = frozenset({"/health"})


def _incoming_request_id(request: Request):
    value = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH:
        return None
    return value


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request context for logging and times each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=_incoming_request_id(request),
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "Unhandled error",
                extra={"extra_fields": {
                    "error": str(exc),
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                }},
            )
            raise
        else:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            if request.url.path not in QUIET_PATHS:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "%s %s -> %d",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={"extra_fields": {
                        "status_code": response.status_code,
                        "duration_ms": duration_ms,
                    }},
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Request context middleware installed")
