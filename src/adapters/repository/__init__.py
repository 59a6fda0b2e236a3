"""Repository adapters - Database implementations."""

from .memory import InMemoryClaimRepository
from .postgres import PostgresClaimStore, PostgresListingRepository, run_migrations

__all__ = [
    "InMemoryClaimRepository",
    "PostgresClaimStore",
    "PostgresListingRepository",
    "run_migrations",
]
