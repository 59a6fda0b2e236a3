"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresClaimStore, PostgresListingRepository
from src.config.settings import get_settings
from src.domain.claims import ClaimVerificationService
from src.domain.ports import EmailSender


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_claim_store(request: Request) -> PostgresClaimStore:
    """Create claim store with connection pool from app state."""
    return PostgresClaimStore(get_pool(request))


def get_listing_repository(request: Request) -> PostgresListingRepository:
    """Create listing repository with connection pool from app state."""
    return PostgresListingRepository(get_pool(request))


def get_email_sender(request: Request) -> EmailSender:
    """Get the email sender built during app lifespan startup."""
    return request.app.state.email_sender


def get_claim_service(request: Request) -> ClaimVerificationService:
    """
    Create claim verification service with injected dependencies.

    Wires together the store, listing repository and email sender for the
    domain service.
    """
    settings = get_settings()
    listings = get_listing_repository(request)
    return ClaimVerificationService(
        store=get_claim_store(request),
        listings=listings,
        mutator=listings,
        email_sender=get_email_sender(request),
        ttl=timedelta(seconds=settings.claim_ttl_seconds),
    )


# Caller identity, set by the upstream authentication layer
account_id_header = APIKeyHeader(name="X-Account-Id", auto_error=False)


def get_caller_id(account_id: str | None = Depends(account_id_header)) -> UUID:
    """
    Extract the authenticated caller's account id.

    Returns:
        Account UUID

    Raises:
        HTTPException: 401 if the header is missing or not a UUID
    """
    if not account_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    try:
        return UUID(account_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        ) from None
