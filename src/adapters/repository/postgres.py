"""
PostgreSQL repository adapters - Implement the claim workflow ports.

This module provides the PostgreSQL implementations of the domain's
ClaimStore, ListingReader and OwnershipMutator ports using psycopg3 with
raw SQL.

Concurrency Design:
-------------------
No application-level locking is used. Every guarantee comes from a single
atomic statement or a single transaction:

1. **create**: ``INSERT ... ON CONFLICT (listing_id) DO UPDATE ... WHERE
   expired``. The UNIQUE constraint on listing_id serializes concurrent
   initiations; the WHERE clause lets an expired claim be replaced but never
   a live one. Exactly one concurrent caller sees ``rowcount == 1``. The
   same transaction then rolls back if a redemption marker still holds the
   listing.

2. **consume**: ``DELETE ... RETURNING`` inside a data-modifying CTE that
   also writes the claim_redemptions marker. Concurrent deletes of the same
   row block on the row lock; the losers observe zero rows.

3. **commit**: listing and account updates run in one transaction. A
   missing row, or a listing owned by another account, raises the matching
   domain error and rolls both back.

References:
- migrations/002_create_pending_claims.sql
"""

import logging
from datetime import datetime
from pathlib import Path
from uuid import UUID

from psycopg import Rollback
from psycopg_pool import ConnectionPool

from src.domain.exceptions import AccountNotFound, AlreadyOwned, ListingNotFound
from src.domain.ports import ClaimRedemption, Listing, PendingClaim

logger = logging.getLogger(__name__)

_CLAIM_COLUMNS = "token, listing_id, claimant_id, contact_email, created_at, expires_at"


class PostgresClaimStore:
    """
    Implements ClaimStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(self, claim: PendingClaim) -> bool:
        """
        Atomically store a claim unless a live claim exists for the listing.

        Returns:
            True if the claim was inserted, or replaced an expired claim;
            False if a non-expired claim or an unreconciled redemption holds
            the listing
        """
        sql = f"""
            INSERT INTO pending_claims ({_CLAIM_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (listing_id) DO UPDATE
            SET token = EXCLUDED.token,
                claimant_id = EXCLUDED.claimant_id,
                contact_email = EXCLUDED.contact_email,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at
            WHERE pending_claims.expires_at < EXCLUDED.created_at
        """

        stored = False
        with self._pool.connection() as conn:
            with conn.transaction() as tx, conn.cursor() as cursor:
                cursor.execute(
                    sql,
                    (
                        claim.token,
                        claim.listing_id,
                        claim.claimant_id,
                        claim.contact_email,
                        claim.created_at,
                        claim.expires_at,
                    ),
                )
                # 1 if INSERT succeeded OR UPDATE WHERE matched (expired claim replaced)
                if cursor.rowcount != 1:
                    return False

                # Fresh snapshot: sees a marker committed by a consume we waited on
                cursor.execute(
                    "SELECT 1 FROM claim_redemptions WHERE listing_id = %s LIMIT 1",
                    (claim.listing_id,),
                )
                if cursor.fetchone() is not None:
                    raise Rollback(tx)
                stored = True
        return stored

    def find_by_token(self, token: str) -> PendingClaim | None:
        sql = f"SELECT {_CLAIM_COLUMNS} FROM pending_claims WHERE token = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (token,))
            row = cursor.fetchone()
        return PendingClaim(*row) if row is not None else None

    def consume(self, token: str, now: datetime) -> PendingClaim | None:
        """
        Delete a live claim and record its redemption marker in one statement.

        Returns:
            The consumed claim, or None if it was already consumed, never
            existed, or has expired
        """
        sql = f"""
            WITH consumed AS (
                DELETE FROM pending_claims
                WHERE token = %(token)s AND expires_at >= %(now)s
                RETURNING {_CLAIM_COLUMNS}
            ), marker AS (
                INSERT INTO claim_redemptions (token, listing_id, claimant_id, consumed_at)
                SELECT token, listing_id, claimant_id, %(now)s FROM consumed
            )
            SELECT {_CLAIM_COLUMNS} FROM consumed
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, {"token": token, "now": now})
            row = cursor.fetchone()
            conn.commit()
        return PendingClaim(*row) if row is not None else None

    def delete(self, token: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM pending_claims WHERE token = %s", (token,))
            conn.commit()

    def delete_expired(self, now: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM pending_claims WHERE expires_at < %s", (now,))
            conn.commit()
            return cursor.rowcount

    def pending_redemptions(self) -> list[ClaimRedemption]:
        sql = """
            SELECT token, listing_id, claimant_id, consumed_at
            FROM claim_redemptions
            ORDER BY consumed_at
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql)
            return [ClaimRedemption(*row) for row in cursor.fetchall()]

    def clear_redemption(self, token: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM claim_redemptions WHERE token = %s", (token,))
            conn.commit()


class PostgresListingRepository:
    """
    Implements ListingReader and OwnershipMutator protocols via psycopg3.

    Listings and accounts belong to the wider application; this adapter only
    touches the ownership columns.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_listing(self, listing_id: UUID) -> Listing | None:
        sql = """
            SELECT id, name, owner_id, is_verified, verified_at
            FROM listings
            WHERE id = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (listing_id,))
            row = cursor.fetchone()
        return Listing(*row) if row is not None else None

    def commit(self, listing_id: UUID, account_id: UUID, now: datetime) -> None:
        """
        Transfer the listing to the account and mark both verified.

        Runs in one transaction; re-running for an already committed pair
        changes nothing (verified_at keeps its first value, owned_listings
        has set semantics).

        Raises:
            ListingNotFound: No listing row with ``listing_id``
            AlreadyOwned: Listing owned by an account other than ``account_id``
            AccountNotFound: No account row with ``account_id``
        """
        listing_sql = """
            UPDATE listings
            SET owner_id = %(account_id)s,
                is_verified = TRUE,
                verified_at = COALESCE(verified_at, %(now)s)
            WHERE id = %(listing_id)s
              AND (owner_id IS NULL OR owner_id = %(account_id)s)
        """

        account_sql = """
            UPDATE accounts
            SET is_owner = TRUE,
                is_verified_owner = TRUE,
                role = CASE WHEN role = 'user' THEN 'business_owner' ELSE role END,
                owned_listings = CASE
                    WHEN %(listing_id)s = ANY(owned_listings) THEN owned_listings
                    ELSE array_append(owned_listings, %(listing_id)s)
                END
            WHERE id = %(account_id)s
        """

        params = {"listing_id": listing_id, "account_id": account_id, "now": now}

        with self._pool.connection() as conn, conn.transaction(), conn.cursor() as cursor:
            # Account first: listings.owner_id references accounts(id)
            cursor.execute(account_sql, params)
            if cursor.rowcount != 1:
                raise AccountNotFound(str(account_id))

            cursor.execute(listing_sql, params)
            if cursor.rowcount != 1:
                cursor.execute("SELECT 1 FROM listings WHERE id = %s", (listing_id,))
                if cursor.fetchone() is not None:
                    raise AlreadyOwned(str(listing_id))
                raise ListingNotFound(str(listing_id))


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
