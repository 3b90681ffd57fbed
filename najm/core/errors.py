# najm/core/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class NajmError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ServiceNotConfiguredError(NajmError):
    status_code = 503


class UpstreamServiceError(NajmError):
    """A vendor API call failed or returned something unusable."""

    status_code = 502


class UploadRejectedError(NajmError):
    status_code = 400


class StorageError(NajmError):
    """The ticket store cannot be read."""

    status_code = 500


class DuplicateTicketError(NajmError):
    status_code = 409

    def __init__(self, ticket_id: str):
        super().__init__("Ticket ID already exists")
        self.ticket_id = ticket_id


async def najm_error_handler(request: Request, exc: NajmError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NajmError, najm_error_handler)
