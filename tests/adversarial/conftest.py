"""
Shared fixtures for adversarial tests against PostgreSQL.

Provides adapters bound to the session pool and seed helpers for the
listing and account rows the claim workflow touches.
"""

from collections.abc import Generator
from uuid import UUID, uuid4

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresClaimStore, PostgresListingRepository


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty the claim tables before each test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE pending_claims, claim_redemptions, listings, accounts")
    yield


@pytest.fixture
def store(pool: ConnectionPool) -> PostgresClaimStore:
    return PostgresClaimStore(pool)


@pytest.fixture
def listings(pool: ConnectionPool) -> PostgresListingRepository:
    return PostgresListingRepository(pool)


@pytest.fixture
def seed(pool: ConnectionPool):
    """Factory inserting a listing and an account; returns their ids."""

    def _seed(role: str = "user", listing_name: str = "Acme Coffee") -> tuple[UUID, UUID]:
        listing_id, account_id = uuid4(), uuid4()
        with pool.connection() as conn:
            conn.execute(
                "INSERT INTO accounts (id, email, role) VALUES (%s, %s, %s)",
                (account_id, f"{account_id}@example.com", role),
            )
            conn.execute(
                "INSERT INTO listings (id, name) VALUES (%s, %s)", (listing_id, listing_name)
            )
        return listing_id, account_id

    return _seed
