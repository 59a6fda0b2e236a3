"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging the verification link for local development.
"""

import logging
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints verification links to stdout.
    """

    def __init__(self, verify_url: str = "http://localhost:3000/verify-ownership") -> None:
        self._verify_url = verify_url

    def send_claim_token(self, to: str, token: str, listing_name: str) -> bool:
        """
        Log the verification link to console (simulates email delivery).

        The link is logged at INFO level to be visible in docker-compose logs.

        Args:
            to: Recipient email address (normalized by domain layer)
            token: Claim token
            listing_name: Display name of the claimed listing

        Returns:
            Always True
        """
        link = f"{self._verify_url}?{urlencode({'token': token})}"
        logger.info("[VERIFICATION] To: %s Listing: %s Link: %s", to, listing_name, link)
        return True
