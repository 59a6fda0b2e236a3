"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class ClaimRequest(BaseModel):
    """Request model for initiating an ownership claim."""

    listing_id: UUID
    contact_email: EmailStr = Field(..., description="Address the verification link is sent to")


class ClaimAcceptedResponse(BaseModel):
    """Response model for an accepted claim. Never contains the token."""

    message: str
    listing_id: UUID
    expires_at: datetime


class RedeemResponse(BaseModel):
    """Response model for a successful redemption."""

    listing_id: UUID
    claimant_id: UUID
    listing_verified: bool
    account_verified_owner: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error taxonomy code")
    message: str
