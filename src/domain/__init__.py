"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for listing ownership claims.
It defines its own port interfaces for infrastructure abstraction, ensuring
true hexagonal architecture decoupling.
"""

from .claims import ClaimReceipt, ClaimVerificationService, ReconcileReport, RedemptionResult
from .exceptions import (
    AccountNotFound,
    AlreadyOwned,
    ClaimError,
    DeliveryFailed,
    DuplicateActiveClaim,
    InvalidOrExpiredToken,
    ListingNotFound,
    ReconciliationFailure,
)
from .ports import (
    Account,
    ClaimRedemption,
    ClaimStore,
    EmailSender,
    Listing,
    ListingReader,
    OwnershipMutator,
    PendingClaim,
)

__all__ = [
    "Account",
    "AccountNotFound",
    "AlreadyOwned",
    "ClaimError",
    "ClaimReceipt",
    "ClaimRedemption",
    "ClaimStore",
    "ClaimVerificationService",
    "DeliveryFailed",
    "DuplicateActiveClaim",
    "EmailSender",
    "InvalidOrExpiredToken",
    "Listing",
    "ListingNotFound",
    "ListingReader",
    "OwnershipMutator",
    "PendingClaim",
    "ReconcileReport",
    "ReconciliationFailure",
    "RedemptionResult",
]
