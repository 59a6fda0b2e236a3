"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent operations on the same listing or token are handled
atomically, preventing attackers from exploiting race conditions to:
- Hold two live claims on one listing
- Redeem one token twice
- Hijack a listing while its expired claim is being replaced

Atomic SQL statements (ON CONFLICT ... WHERE, DELETE ... RETURNING) are the
defense under test.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresClaimStore, PostgresListingRepository
from src.domain.claims import ClaimVerificationService
from src.domain.exceptions import DuplicateActiveClaim, InvalidOrExpiredToken
from src.domain.ports import PendingClaim
from src.domain.tokens import generate_token

pytestmark = pytest.mark.adversarial

NOW = datetime(2026, 4, 1, 15, 0, tzinfo=UTC)


def make_claim(listing_id: UUID, created_at: datetime = NOW) -> PendingClaim:
    return PendingClaim(
        token=generate_token(),
        listing_id=listing_id,
        claimant_id=uuid4(),
        contact_email="attacker@example.com",
        created_at=created_at,
        expires_at=created_at + timedelta(hours=24),
    )


class TestRaceConditionAttacks:
    """
    Adversarial tests simulating race condition attacks.

    Each test launches many concurrent requests against the same listing or
    token and checks that exactly one wins.
    """

    @pytest.mark.parametrize("num_attackers", [5, 20])
    def test_concurrent_claims_exactly_one_succeeds(
        self, pool: ConnectionPool, num_attackers: int
    ) -> None:
        """
        Attack scenario: many claimants submit claims for one listing at once.

        Expected defense: ON CONFLICT on listing_id admits exactly one row.
        """
        listing_id = uuid4()
        results: list[bool] = []
        results_lock = threading.Lock()

        def attack_create() -> None:
            result = PostgresClaimStore(pool).create(make_claim(listing_id))
            with results_lock:
                results.append(result)

        with ThreadPoolExecutor(max_workers=num_attackers) as executor:
            futures = [executor.submit(attack_create) for _ in range(num_attackers)]
            for f in futures:
                f.result()

        assert results.count(True) == 1, (
            f"Race condition vulnerability: {results.count(True)} claims accepted "
            f"(expected exactly 1)"
        )

        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) FROM pending_claims WHERE listing_id = %s", (listing_id,)
            )
            count = cursor.fetchone()[0]
        assert count == 1, f"Data corruption: {count} rows for one listing (expected 1)"

    def test_concurrent_replacement_of_expired_claim(self, pool: ConnectionPool) -> None:
        """
        Attack scenario: an expired claim exists and several claimants race to
        replace it.

        Expected defense: the conditional upsert lets exactly one replacement win.
        """
        listing_id = uuid4()
        stale = make_claim(listing_id, NOW - timedelta(days=2))
        PostgresClaimStore(pool).create(stale)

        later = NOW + timedelta(hours=1)
        results: list[bool] = []
        results_lock = threading.Lock()

        def attack_replace() -> None:
            result = PostgresClaimStore(pool).create(make_claim(listing_id, later))
            with results_lock:
                results.append(result)

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(attack_replace) for _ in range(5)]
            for f in futures:
                f.result()

        assert results.count(True) == 1, (
            f"Replacement race: {results.count(True)} replacements succeeded (expected 1)"
        )
        assert PostgresClaimStore(pool).find_by_token(stale.token) is None

    def test_concurrent_consume_single_winner(self, store: PostgresClaimStore) -> None:
        """
        Attack scenario: an intercepted token is replayed concurrently.

        Expected defense: DELETE ... RETURNING hands the claim to one caller.
        """
        claim = make_claim(uuid4())
        store.create(claim)

        with ThreadPoolExecutor(max_workers=10) as executor:
            results = list(executor.map(lambda _: store.consume(claim.token, NOW), range(10)))

        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        assert winners[0] == claim
        assert len(store.pending_redemptions()) == 1

    def test_concurrent_redeem_commits_once(
        self,
        store: PostgresClaimStore,
        listings: PostgresListingRepository,
        pool: ConnectionPool,
        seed,
    ) -> None:
        """
        Attack scenario: the full redeem flow is raced with one valid token.

        Expected defense: one redemption succeeds, the rest see an invalid
        token, and the account lists the listing once.
        """
        listing_id, account_id = seed()
        sender = Mock()
        sender.send_claim_token.return_value = True
        service = ClaimVerificationService(
            store=store, listings=listings, mutator=listings, email_sender=sender
        )
        service.initiate_claim(listing_id, account_id, "owner@example.com")
        token = sender.send_claim_token.call_args[0][1]

        barrier = threading.Barrier(8)
        outcomes: list[str] = []
        outcomes_lock = threading.Lock()

        def attack_redeem() -> None:
            barrier.wait()
            try:
                service.redeem(token)
                outcome = "ok"
            except InvalidOrExpiredToken:
                outcome = "rejected"
            with outcomes_lock:
                outcomes.append(outcome)

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(attack_redeem) for _ in range(8)]
            for f in futures:
                f.result()

        assert outcomes.count("ok") == 1
        assert outcomes.count("rejected") == 7

        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT owned_listings FROM accounts WHERE id = %s", (account_id,))
            assert cursor.fetchone()[0] == [listing_id]
        assert store.pending_redemptions() == []

    def test_concurrent_initiate_one_email_sent(
        self,
        store: PostgresClaimStore,
        listings: PostgresListingRepository,
        seed,
    ) -> None:
        """
        Attack scenario: competing claimants call initiate_claim together.

        Expected defense: one receipt, the rest DuplicateActiveClaim, and a
        single verification email.
        """
        listing_id, _ = seed()
        sender = Mock()
        sender.send_claim_token.return_value = True
        service = ClaimVerificationService(
            store=store, listings=listings, mutator=listings, email_sender=sender
        )

        def attack_initiate(_: int) -> str:
            try:
                service.initiate_claim(listing_id, uuid4(), "rival@example.com")
            except DuplicateActiveClaim:
                return "duplicate"
            return "accepted"

        with ThreadPoolExecutor(max_workers=6) as executor:
            outcomes = list(executor.map(attack_initiate, range(6)))

        assert outcomes.count("accepted") == 1
        assert outcomes.count("duplicate") == 5
        assert sender.send_claim_token.call_count == 1
