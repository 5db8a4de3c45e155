"""
Exception types and their mapping onto the submission outcome envelope.

Every response the webhook sends carries an ``outcome`` field so that a
front-end can tell "skipped", "rejected", "published", "pending_review"
and "failed" apart without parsing messages.  Rejections are expected
traffic and are logged at WARNING; store failures are logged with a
traceback.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.schemas import Outcome, SubmissionResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------

class SubmissionRejected(Exception):
    """The submission is a comment but cannot be accepted as one."""

    SPAM = "spam"
    MISSING_FIELDS = "missing_fields"
    TOO_LONG = "too_long"

    def __init__(self, code: str, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.missing = missing


class MalformedSubmission(Exception):
    """The event body could not be decoded into a submission payload."""


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """The content store failed or answered with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class VersionConflict(StoreError):
    """The document changed since it was read; the write was refused."""


class CollectionFormatError(StoreError):
    """The stored collection document is not a JSON array."""


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _envelope(status_code: int, body: SubmissionResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


async def handle_rejected(request: Request, exc: SubmissionRejected) -> JSONResponse:
    return _envelope(
        400,
        SubmissionResponse(outcome=Outcome.REJECTED, error=exc.message, missing_fields=exc.missing),
    )


async def handle_malformed(request: Request, exc: MalformedSubmission) -> JSONResponse:
    logger.error("Error parsing event body: %s", exc)
    return _envelope(400, SubmissionResponse(outcome=Outcome.REJECTED, error="Malformed request body."))


async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    status_code = 409 if isinstance(exc, VersionConflict) else 500
    return _envelope(
        status_code,
        SubmissionResponse(outcome=Outcome.FAILED, error=f"Error processing comment: {exc.message}"),
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error processing submission")
    return _envelope(
        500,
        SubmissionResponse(outcome=Outcome.FAILED, error=f"Error processing comment: {exc}"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SubmissionRejected, handle_rejected)
    app.add_exception_handler(MalformedSubmission, handle_malformed)
    app.add_exception_handler(StoreError, handle_store_error)
    app.add_exception_handler(Exception, handle_unexpected)
