"""
Claim verification domain service - Listing ownership state machine.

This module contains the core business logic for claiming ownership of a
listing, implementing a single-use, time-bounded token handshake delivered
out-of-band by email.

Ownership State Machine
=======================

States (per listing, derived from stored data):
- UNCLAIMED: Listing has no owner and no live pending claim
- PENDING_VERIFICATION: A non-expired pending claim exists
- VERIFIED: Terminal state, listing owned and verified

Valid Transitions:
    UNCLAIMED -> PENDING_VERIFICATION   (initiate_claim, email accepted)
    PENDING_VERIFICATION -> VERIFIED    (redeem within TTL)
    PENDING_VERIFICATION -> UNCLAIMED   (TTL exceeded, or delivery failed)

Invalid Transitions (never allowed):
    VERIFIED -> any                     (VERIFIED is terminal)

Note: Mutual exclusion between concurrent claims and concurrent redemptions
is enforced by the store's atomic primitives (unique listing constraint on
create, delete-and-return on consume), never by in-process locks. A claim
that was consumed but not yet committed keeps holding its listing until
reconciled, so no second claim can be started for it.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

from .exceptions import (
    AlreadyOwned,
    ClaimError,
    DeliveryFailed,
    DuplicateActiveClaim,
    InvalidOrExpiredToken,
    ListingNotFound,
    ReconciliationFailure,
)
from .ports import ClaimStore, Clock, EmailSender, ListingReader, OwnershipMutator, PendingClaim
from .tokens import fingerprint, generate_token, is_well_formed

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TTL = timedelta(hours=24)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _error_code(exc: Exception) -> str:
    return exc.code if isinstance(exc, ClaimError) else type(exc).__name__


@dataclass(frozen=True)
class ClaimReceipt:
    """Outcome of a successful claim initiation. Never carries the token."""

    listing_id: UUID
    token_fingerprint: str
    expires_at: datetime


@dataclass(frozen=True)
class RedemptionResult:
    """Outcome of a successful redemption."""

    listing_id: UUID
    claimant_id: UUID
    listing_verified: bool = True
    account_verified_owner: bool = True


@dataclass(frozen=True)
class ReconcileReport:
    """Outcome of a reconciliation pass over pending redemption markers."""

    repaired: int = 0
    failed: int = 0
    conflicts: int = 0


@dataclass
class ClaimVerificationService:
    """
    Domain service for listing ownership claims.

    Orchestrates claim creation, token delivery, redemption, and the
    housekeeping jobs (expired-claim sweep, reconciliation).
    """

    store: ClaimStore
    listings: ListingReader
    mutator: OwnershipMutator
    email_sender: EmailSender
    ttl: timedelta = DEFAULT_CLAIM_TTL
    clock: Clock = field(default=utc_now)

    def initiate_claim(
        self, listing_id: UUID, claimant_id: UUID, contact_email: str
    ) -> ClaimReceipt:
        """
        Start an ownership claim and email the token to the contact address.

        Args:
            listing_id: Listing being claimed
            claimant_id: Authenticated account making the claim
            contact_email: Address the token is delivered to (will be normalized)

        Returns:
            ClaimReceipt with the token fingerprint and expiry

        Raises:
            ListingNotFound: Listing does not exist
            AlreadyOwned: Listing already has an owner
            DuplicateActiveClaim: Another live claim exists for the listing
            DeliveryFailed: Email was not accepted; the claim was rolled back
        """
        listing = self.listings.get_listing(listing_id)
        if listing is None:
            raise ListingNotFound(str(listing_id))
        if listing.owner_id is not None:
            raise AlreadyOwned(str(listing_id))

        now = self.clock()
        claim = PendingClaim(
            token=generate_token(),
            listing_id=listing_id,
            claimant_id=claimant_id,
            contact_email=self._normalize_email(contact_email),
            created_at=now,
            expires_at=now + self.ttl,
        )
        token_id = fingerprint(claim.token)

        if not self.store.create(claim):
            logger.info("Claim rejected for listing %s: active claim in flight", listing_id)
            raise DuplicateActiveClaim(str(listing_id))

        if not self._dispatch(claim, listing.name):
            self.store.delete(claim.token)
            logger.warning(
                "Claim %s for listing %s rolled back: delivery failed", token_id, listing_id
            )
            raise DeliveryFailed(str(listing_id))

        logger.info(
            "Claim %s issued for listing %s by account %s", token_id, listing_id, claimant_id
        )
        return ClaimReceipt(
            listing_id=listing_id, token_fingerprint=token_id, expires_at=claim.expires_at
        )

    def redeem(self, token: str) -> RedemptionResult:
        """
        Redeem a claim token, verifying the listing and the claimant.

        Unknown, malformed, expired and already-redeemed tokens all fail the
        same way so callers cannot probe token validity.

        Raises:
            InvalidOrExpiredToken: Token cannot be redeemed
            AlreadyOwned: Listing was granted to another account meanwhile
            ReconciliationFailure: Claim consumed but the commit failed
        """
        if not is_well_formed(token):
            raise InvalidOrExpiredToken()

        now = self.clock()
        claim = self.store.find_by_token(token)
        if claim is None or claim.is_expired(now):
            raise InvalidOrExpiredToken()

        consumed = self.store.consume(token, now)
        if consumed is None:
            # Lost the race to a concurrent redemption
            raise InvalidOrExpiredToken()

        token_id = fingerprint(token)
        try:
            self.mutator.commit(consumed.listing_id, consumed.claimant_id, now)
        except AlreadyOwned:
            # Nothing was written; the marker has nothing left to repair
            self.store.clear_redemption(token)
            logger.warning(
                "Claim %s for listing %s refused: listing owned by another account",
                token_id,
                consumed.listing_id,
            )
            raise
        except Exception as exc:
            logger.critical(
                "Reconciliation required: claim %s consumed for listing %s, "
                "commit for account %s failed: %s",
                token_id,
                consumed.listing_id,
                consumed.claimant_id,
                _error_code(exc),
            )
            raise ReconciliationFailure(
                token_id, consumed.listing_id, consumed.claimant_id
            ) from exc

        try:
            self.store.clear_redemption(token)
        except Exception:
            # Ownership is granted; reconcile replays the leftover marker
            logger.exception("Claim %s committed but its redemption marker was kept", token_id)
        logger.info(
            "Claim %s redeemed: listing %s verified for account %s",
            token_id,
            consumed.listing_id,
            consumed.claimant_id,
        )
        return RedemptionResult(listing_id=consumed.listing_id, claimant_id=consumed.claimant_id)

    def sweep_expired(self) -> int:
        """Delete expired pending claims. Housekeeping only."""
        removed = self.store.delete_expired(self.clock())
        logger.info("Swept %d expired claim(s)", removed)
        return removed

    def reconcile(self) -> ReconcileReport:
        """
        Re-apply the commit for every consumed-but-uncommitted claim.

        Commits are idempotent, so markers left by a crash after a
        successful commit are also safe to replay. A marker whose listing
        now belongs to another account is a conflict: it is reported and
        discarded, never applied.
        """
        repaired = failed = conflicts = 0
        for redemption in self.store.pending_redemptions():
            token_id = fingerprint(redemption.token)
            try:
                self.mutator.commit(
                    redemption.listing_id, redemption.claimant_id, redemption.consumed_at
                )
            except AlreadyOwned:
                conflicts += 1
                logger.error(
                    "Reconciliation conflict: claim %s for listing %s by account %s "
                    "discarded, listing owned by another account",
                    token_id,
                    redemption.listing_id,
                    redemption.claimant_id,
                )
                self.store.clear_redemption(redemption.token)
                continue
            except Exception as exc:
                failed += 1
                logger.error(
                    "Reconciliation of claim %s still failing: %s", token_id, _error_code(exc)
                )
                continue
            self.store.clear_redemption(redemption.token)
            repaired += 1
            logger.info(
                "Reconciled claim %s: listing %s verified for account %s",
                token_id,
                redemption.listing_id,
                redemption.claimant_id,
            )
        return ReconcileReport(repaired=repaired, failed=failed, conflicts=conflicts)

    def _dispatch(self, claim: PendingClaim, listing_name: str) -> bool:
        """Send the token; any exception from the sender counts as failure."""
        try:
            return bool(
                self.email_sender.send_claim_token(claim.contact_email, claim.token, listing_name)
            )
        except Exception:
            logger.exception("Email sender raised for claim %s", fingerprint(claim.token))
            return False

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and delivery.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()
