"""Per-attempt request ids for booking log lines.

Every booking attempt runs inside ``booking_attempt()``, which tags the
store, ledger and engine log lines it produces with one ``REQ-xxxxxxxx``
id and restores the previous id when the attempt ends. Outside an
attempt records carry ``NO_REQUEST_ID``.

Usage:
    from booking_engine.logging_context import booking_attempt, get_request_logger

    logger = get_request_logger(__name__)
    with booking_attempt() as request_id:
        logger.info("Validating booking")  # record.request_id == request_id
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST_ID = "NO_REQUEST_ID"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def new_request_id() -> str:
    return f"REQ-{uuid.uuid4().hex[:8]}"


def get_request_id() -> str:
    """Id of the booking attempt in progress, or ``NO_REQUEST_ID``."""
    return _request_id.get()


@contextmanager
def booking_attempt(request_id: Optional[str] = None) -> Iterator[str]:
    """Scope a request id to one booking attempt."""
    token = _request_id.set(request_id or new_request_id())
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Stamps ``record.request_id`` unless an earlier filter already did."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Module logger whose records always carry a request id."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger


def configure_logging(level: str) -> None:
    """Root stream handler that prints the request id of every record.

    The filter sits on the handler so records from loggers that never went
    through ``get_request_logger`` still format.
    """
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
    )
