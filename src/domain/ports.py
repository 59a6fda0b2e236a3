"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records the claim workflow exchanges with
infrastructure and the interfaces (ports) adapters implement.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class PendingClaim:
    """A single-use ownership claim awaiting redemption."""

    token: str
    listing_id: UUID
    claimant_id: UUID
    contact_email: str
    created_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class ClaimRedemption:
    """Marker for a consumed claim whose listing/account commit is pending."""

    token: str
    listing_id: UUID
    claimant_id: UUID
    consumed_at: datetime


@dataclass(frozen=True)
class Listing:
    """Listing fields relevant to ownership claims."""

    id: UUID
    name: str
    owner_id: UUID | None = None
    is_verified: bool = False
    verified_at: datetime | None = None


@dataclass(frozen=True)
class Account:
    """Account fields relevant to ownership claims."""

    id: UUID
    role: str = "user"
    is_owner: bool = False
    is_verified_owner: bool = False
    owned_listings: tuple[UUID, ...] = ()


class ClaimStore(Protocol):
    """Port interface for pending claim persistence."""

    def create(self, claim: PendingClaim) -> bool:
        """
        Atomically insert a claim unless a live claim exists for the listing.

        An expired claim for the same listing is replaced in the same
        operation. An outstanding redemption marker for the listing counts
        as a live claim.

        Returns:
            True if stored, False if a non-expired claim or an unreconciled
            redemption already holds the listing
        """
        ...

    def find_by_token(self, token: str) -> PendingClaim | None:
        ...

    def consume(self, token: str, now: datetime) -> PendingClaim | None:
        """
        Atomically delete the claim and record a redemption marker.

        Concurrent calls with the same token: exactly one receives the
        claim, all others receive None.
        """
        ...

    def delete(self, token: str) -> None:
        ...

    def delete_expired(self, now: datetime) -> int:
        """Remove claims expired as of ``now``. Returns rows removed."""
        ...

    def pending_redemptions(self) -> list[ClaimRedemption]:
        ...

    def clear_redemption(self, token: str) -> None:
        ...


class ListingReader(Protocol):
    """Port interface for reading listings."""

    def get_listing(self, listing_id: UUID) -> Listing | None:
        ...


class OwnershipMutator(Protocol):
    """Port interface for the terminal listing/account transition."""

    def commit(self, listing_id: UUID, account_id: UUID, now: datetime) -> None:
        """
        Mark the listing owned and verified, and the account a verified owner.

        Both updates apply as one unit. Idempotent for the same account;
        never moves a listing away from a different owner.

        Raises:
            ListingNotFound: listing row missing
            AlreadyOwned: listing owned by a different account
            AccountNotFound: account row missing
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_claim_token(self, to: str, token: str, listing_name: str) -> bool:
        """
        Send the claim token to the contact address.

        Returns:
            True when the message was accepted for delivery
        """
        ...


Clock = Callable[[], datetime]
