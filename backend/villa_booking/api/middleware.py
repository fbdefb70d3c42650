"""
Request middleware: correlation ids and access logging.

The X-Request-ID a client sends is echoed back (one is generated when
absent). Requests against a single booking also bind `booking_id`, so every
service log line for that request can be found by booking.
"""

import re
import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from villa_booking.core.config import get_settings
from villa_booking.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"

# Health checks and metric scrapes are logged at debug only
QUIET_PATHS = frozenset({"/health", "/metrics"})

_BOOKING_PATH = re.compile(r"/bookings/(?P<booking_id>\d+)(?:/|$)")


def booking_id_from_path(path: str) -> Optional[int]:
    match = _BOOKING_PATH.search(path)
    return int(match.group("booking_id")) if match else None


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id, "method": request.method, "path": path}
        booking_id = booking_id_from_path(path)
        if booking_id is not None:
            context["booking_id"] = booking_id
        structlog.contextvars.bind_contextvars(**context)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("request_failed", error=str(e), duration_ms=_elapsed_ms(started))
            raise

        duration_ms = _elapsed_ms(started)
        if response.status_code >= 500:
            log = logger.error
        elif duration_ms >= get_settings().SLOW_REQUEST_MS:
            log = logger.warning
        elif path in QUIET_PATHS:
            log = logger.debug
        else:
            log = logger.info
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms}ms"
        return response
