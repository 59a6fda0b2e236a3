"""
Domain exceptions - Semantic error types for ownership claims.

This module defines the claim error taxonomy. Each error carries a stable
``code`` that the API layer exposes to callers without leaking
infrastructure details.
"""


class ClaimError(Exception):
    """Base class for claim domain errors."""

    code = "ClaimError"


class AlreadyOwned(ClaimError):
    """Listing already has an owner."""

    code = "AlreadyOwned"


class DuplicateActiveClaim(ClaimError):
    """Another non-expired claim is in flight for the listing."""

    code = "DuplicateActiveClaim"


class DeliveryFailed(ClaimError):
    """Verification email could not be dispatched; the claim was rolled back."""

    code = "DeliveryFailed"


class InvalidOrExpiredToken(ClaimError):
    """
    Token unknown, expired, or already redeemed.

    The three causes are deliberately indistinguishable to callers.
    """

    code = "InvalidOrExpiredToken"


class ListingNotFound(ClaimError):
    """Listing does not exist."""

    code = "ListingNotFound"


class AccountNotFound(ClaimError):
    """Account does not exist."""

    code = "AccountNotFound"


class ReconciliationFailure(ClaimError):
    """
    Claim consumed but the listing/account commit failed.

    The redemption marker is left in place so the reconcile job can
    repair the pair. Always raised with the original cause chained.
    """

    code = "ReconciliationFailure"

    def __init__(self, token_fingerprint: str, listing_id: object, claimant_id: object) -> None:
        super().__init__(
            f"claim {token_fingerprint} consumed for listing {listing_id} "
            f"but commit for account {claimant_id} failed"
        )
        self.token_fingerprint = token_fingerprint
        self.listing_id = listing_id
        self.claimant_id = claimant_id
