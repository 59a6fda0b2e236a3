"""
API error mapping - Claim error taxonomy to HTTP responses.

Every ClaimError becomes ``{"error": <code>, "message": <text>}``. Messages
are deliberately coarse: both "already owned" and "claim in flight" read as
already claimed, and every token failure reads the same.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.exceptions import (
    AccountNotFound,
    AlreadyOwned,
    ClaimError,
    DeliveryFailed,
    DuplicateActiveClaim,
    InvalidOrExpiredToken,
    ListingNotFound,
    ReconciliationFailure,
)

logger = logging.getLogger(__name__)

ALREADY_CLAIMED_MESSAGE = "Listing already claimed, try again later"
INVALID_TOKEN_MESSAGE = "Invalid or expired verification token"

_ERROR_MAP: dict[type[ClaimError], tuple[int, str]] = {
    AlreadyOwned: (status.HTTP_409_CONFLICT, ALREADY_CLAIMED_MESSAGE),
    DuplicateActiveClaim: (status.HTTP_409_CONFLICT, ALREADY_CLAIMED_MESSAGE),
    DeliveryFailed: (status.HTTP_502_BAD_GATEWAY, "Verification email could not be sent"),
    InvalidOrExpiredToken: (status.HTTP_400_BAD_REQUEST, INVALID_TOKEN_MESSAGE),
    ListingNotFound: (status.HTTP_404_NOT_FOUND, "Listing not found"),
    AccountNotFound: (status.HTTP_404_NOT_FOUND, "Account not found"),
    ReconciliationFailure: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error"),
}


def error_status(exc: ClaimError) -> tuple[int, str]:
    """Return (status code, message) for a claim error."""
    return _ERROR_MAP.get(
        type(exc), (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error")
    )


async def claim_error_handler(request: Request, exc: ClaimError) -> JSONResponse:
    status_code, message = error_status(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=status_code, content={"error": exc.code, "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClaimError, claim_error_handler)
