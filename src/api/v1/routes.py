"""
API v1 routes.

Defines REST endpoints for the listing ownership claim API. Handlers are
plain functions so FastAPI runs them in its threadpool; the claim service
blocks on database and email I/O.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_caller_id, get_claim_service
from src.api.models import ClaimAcceptedResponse, ClaimRequest, ErrorResponse, RedeemResponse
from src.domain.claims import ClaimVerificationService

router = APIRouter(tags=["v1"])


@router.post(
    "/claims",
    response_model=ClaimAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        401: {"description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Listing not found"},
        409: {"model": ErrorResponse, "description": "Listing already claimed"},
        502: {"model": ErrorResponse, "description": "Verification email could not be sent"},
        422: {"description": "Validation error"},
    },
    summary="Claim ownership of a listing",
    description="Start an ownership claim. A single-use verification link is "
    "emailed to the contact address; it is never returned in the response.",
)
def initiate_claim(
    request_data: ClaimRequest,
    caller_id: UUID = Depends(get_caller_id),
    service: ClaimVerificationService = Depends(get_claim_service),
) -> ClaimAcceptedResponse:
    """
    Initiate an ownership claim for a listing.

    - **listing_id**: Listing to claim
    - **contact_email**: Address the verification link is sent to
    """
    receipt = service.initiate_claim(
        request_data.listing_id, caller_id, request_data.contact_email
    )
    return ClaimAcceptedResponse(
        message="Verification email sent",
        listing_id=receipt.listing_id,
        expires_at=receipt.expires_at,
    )


@router.post(
    "/claims/{token}/redeem",
    response_model=RedeemResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired token"},
        500: {"model": ErrorResponse, "description": "Claim consumed but not committed"},
    },
    summary="Redeem a claim token",
    description="Redeem the token from the verification email to verify "
    "ownership of the listing.",
)
def redeem_claim(
    token: str,
    service: ClaimVerificationService = Depends(get_claim_service),
) -> RedeemResponse:
    """
    Redeem a claim token.

    All token failures (unknown, expired, already used) return the same
    generic error.
    """
    result = service.redeem(token)
    return RedeemResponse(
        listing_id=result.listing_id,
        claimant_id=result.claimant_id,
        listing_verified=result.listing_verified,
        account_verified_owner=result.account_verified_owner,
    )
