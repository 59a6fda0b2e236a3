"""
Maintenance commands for the claim store.

Usage:
    python -m src.maintenance sweep
    python -m src.maintenance reconcile

``sweep`` removes expired pending claims (housekeeping only; expiry is
enforced at redemption regardless). ``reconcile`` replays the listing/account
commit for claims that were consumed but never committed, and exits non-zero
if any remain broken or conflict with a newer owner so a scheduler can alert
on it.
"""

import argparse
import logging
import sys
from datetime import timedelta

from psycopg_pool import ConnectionPool

from src.adapters.email import ConsoleEmailSender
from src.adapters.repository.postgres import PostgresClaimStore, PostgresListingRepository
from src.config.settings import Settings, get_settings
from src.domain.claims import ClaimVerificationService

logger = logging.getLogger(__name__)


def build_service(pool: ConnectionPool, settings: Settings) -> ClaimVerificationService:
    """Wire the service for housekeeping. Sweep and reconcile never send email."""
    listings = PostgresListingRepository(pool)
    return ClaimVerificationService(
        store=PostgresClaimStore(pool),
        listings=listings,
        mutator=listings,
        email_sender=ConsoleEmailSender(verify_url=settings.claim_verify_url),
        ttl=timedelta(seconds=settings.claim_ttl_seconds),
    )


def run(command: str, service: ClaimVerificationService) -> int:
    """Execute a maintenance command. Returns the process exit status."""
    if command == "sweep":
        service.sweep_expired()
        return 0

    report = service.reconcile()
    logger.info(
        "Reconciliation: %d repaired, %d failed, %d conflicts",
        report.repaired,
        report.failed,
        report.conflicts,
    )
    return 1 if report.failed or report.conflicts else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m src.maintenance")
    parser.add_argument("command", choices=["sweep", "reconcile"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    settings = get_settings()

    with ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=2) as pool:
        return run(args.command, build_service(pool, settings))


if __name__ == "__main__":
    sys.exit(main())
