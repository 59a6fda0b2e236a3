"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- The in-memory repository seeded with one listing and two accounts
- A claim service wired to mocked or in-memory ports
- A PostgreSQL connection pool for integration and adversarial tests
"""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.memory import InMemoryClaimRepository
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from src.domain.claims import ClaimVerificationService
from src.domain.ports import Account, Listing

EPOCH = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = EPOCH) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def listing_id() -> UUID:
    return uuid4()


@pytest.fixture
def alice_id() -> UUID:
    return uuid4()


@pytest.fixture
def bob_id() -> UUID:
    return uuid4()


@pytest.fixture
def repository(listing_id: UUID, alice_id: UUID, bob_id: UUID) -> InMemoryClaimRepository:
    """In-memory repository with one unclaimed listing and two plain accounts."""
    repo = InMemoryClaimRepository()
    repo.add_listing(Listing(id=listing_id, name="Acme Coffee"))
    repo.add_account(Account(id=alice_id))
    repo.add_account(Account(id=bob_id))
    return repo


@pytest.fixture
def email_sender() -> Mock:
    sender = Mock()
    sender.send_claim_token.return_value = True
    return sender


@pytest.fixture
def service(
    repository: InMemoryClaimRepository, email_sender: Mock, clock: FakeClock
) -> ClaimVerificationService:
    """Claim service over the in-memory repository."""
    return ClaimVerificationService(
        store=repository,
        listings=repository,
        mutator=repository,
        email_sender=email_sender,
        clock=clock,
    )


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool for tests that need PostgreSQL.

    Skips the requesting test when the database is unreachable. Migrations
    are applied once per session.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    try:
        pool.wait(timeout=3.0)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()
