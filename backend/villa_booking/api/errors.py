"""
Exception handlers mapping service errors and database outages to HTTP responses.

Body shape: {"error": <stable kind>, "detail": <reason>}.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from villa_booking.core.exceptions import InfrastructureError, ServiceError
from villa_booking.core.logging import get_logger

logger = get_logger(__name__)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("service_error", kind=exc.kind, detail=exc.detail, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def infrastructure_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("repository_unavailable", error=str(exc))
    error = InfrastructureError("Booking storage is temporarily unavailable. Please retry later.")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(OperationalError, infrastructure_error_handler)
    app.add_exception_handler(InterfaceError, infrastructure_error_handler)
