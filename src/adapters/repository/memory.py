"""
In-memory repository adapter - Implements the claim workflow ports.

Single-process store for local development and tests. One lock guards all
state so every method is atomic, mirroring the single-statement guarantees
of the PostgreSQL adapter.
"""

import threading
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from src.domain.exceptions import AccountNotFound, AlreadyOwned, ListingNotFound
from src.domain.ports import Account, ClaimRedemption, Listing, PendingClaim


class InMemoryClaimRepository:
    """
    Implements ClaimStore, ListingReader and OwnershipMutator protocols.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._claims: dict[str, PendingClaim] = {}
        self._redemptions: dict[str, ClaimRedemption] = {}
        self._listings: dict[UUID, Listing] = {}
        self._accounts: dict[UUID, Account] = {}

    # Fixtures for the entities owned by the wider application

    def add_listing(self, listing: Listing) -> None:
        with self._lock:
            self._listings[listing.id] = listing

    def add_account(self, account: Account) -> None:
        with self._lock:
            self._accounts[account.id] = account

    def get_account(self, account_id: UUID) -> Account | None:
        with self._lock:
            return self._accounts.get(account_id)

    # ClaimStore

    def create(self, claim: PendingClaim) -> bool:
        with self._lock:
            if any(r.listing_id == claim.listing_id for r in self._redemptions.values()):
                return False
            existing = self._claim_for_listing(claim.listing_id)
            if existing is not None:
                if not existing.is_expired(claim.created_at):
                    return False
                del self._claims[existing.token]
            self._claims[claim.token] = claim
            return True

    def find_by_token(self, token: str) -> PendingClaim | None:
        with self._lock:
            return self._claims.get(token)

    def consume(self, token: str, now: datetime) -> PendingClaim | None:
        with self._lock:
            claim = self._claims.get(token)
            if claim is None or claim.is_expired(now):
                return None
            del self._claims[token]
            self._redemptions[token] = ClaimRedemption(
                token=token,
                listing_id=claim.listing_id,
                claimant_id=claim.claimant_id,
                consumed_at=now,
            )
            return claim

    def delete(self, token: str) -> None:
        with self._lock:
            self._claims.pop(token, None)

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [token for token, claim in self._claims.items() if claim.is_expired(now)]
            for token in expired:
                del self._claims[token]
            return len(expired)

    def pending_redemptions(self) -> list[ClaimRedemption]:
        with self._lock:
            return sorted(self._redemptions.values(), key=lambda r: r.consumed_at)

    def clear_redemption(self, token: str) -> None:
        with self._lock:
            self._redemptions.pop(token, None)

    # ListingReader / OwnershipMutator

    def get_listing(self, listing_id: UUID) -> Listing | None:
        with self._lock:
            return self._listings.get(listing_id)

    def commit(self, listing_id: UUID, account_id: UUID, now: datetime) -> None:
        with self._lock:
            listing = self._listings.get(listing_id)
            if listing is None:
                raise ListingNotFound(str(listing_id))
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFound(str(account_id))
            if listing.owner_id not in (None, account_id):
                raise AlreadyOwned(str(listing_id))

            self._listings[listing_id] = replace(
                listing,
                owner_id=account_id,
                is_verified=True,
                verified_at=listing.verified_at or now,
            )
            owned = account.owned_listings
            if listing_id not in owned:
                owned = (*owned, listing_id)
            self._accounts[account_id] = replace(
                account,
                role="business_owner" if account.role == "user" else account.role,
                is_owner=True,
                is_verified_owner=True,
                owned_listings=owned,
            )

    def _claim_for_listing(self, listing_id: UUID) -> PendingClaim | None:
        for claim in self._claims.values():
            if claim.listing_id == listing_id:
                return claim
        return None
