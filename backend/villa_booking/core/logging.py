"""
Structured logging for the booking service, built on structlog.

Every event carries the unit it concerns. Request middleware binds
request_id and, for /bookings/{id} routes, booking_id into structlog
contextvars, so a booking's whole history can be pulled from the logs by id.
Guest contact details never reach the log output in clear text.
"""

import logging
import sys

import structlog

from villa_booking.core.config import get_settings

# Event keys holding guest contact details
CONTACT_FIELDS = frozenset({"email", "phone"})

_configured = False


def add_unit_context(logger, method_name: str, event_dict: dict) -> dict:
    settings = get_settings()
    event_dict.setdefault("unit_id", settings.UNIT_ID)
    event_dict.setdefault("env", settings.ENVIRONMENT)
    return event_dict


def mask_contact_details(logger, method_name: str, event_dict: dict) -> dict:
    """Keep the first character and the domain of an email; the tail of a phone."""
    for field in CONTACT_FIELDS & event_dict.keys():
        value = event_dict[field]
        if not value:
            continue
        value = str(value)
        if field == "email" and "@" in value:
            local, _, domain = value.partition("@")
            event_dict[field] = f"{local[:1]}***@{domain}"
        else:
            event_dict[field] = f"***{value[-3:]}"
    return event_dict


def _json_output(settings) -> bool:
    return settings.ENVIRONMENT == "production" or settings.LOG_JSON


def setup_logging() -> None:
    global _configured
    if _configured:
        return

    settings = get_settings()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_unit_context,
        mask_contact_details,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if _json_output(settings):
        processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ]
        )
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
