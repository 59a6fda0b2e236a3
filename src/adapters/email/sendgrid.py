"""
SendGrid email sender adapter - Implements EmailSender protocol.

Delivers claim tokens through the SendGrid v3 mail API. Every request is
bounded by a timeout; timeouts, transport errors and non-2xx responses are
reported as a failed send, never retried here.
"""

import logging
from html import escape
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridEmailSender:
    """Implements EmailSender protocol via the SendGrid HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        verify_url: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._verify_url = verify_url
        self._timeout = timeout
        self._client = client or httpx.Client()

    def send_claim_token(self, to: str, token: str, listing_name: str) -> bool:
        if not self._api_key:
            logger.error("[Email][SendGrid] No API key configured")
            return False

        link = f"{self._verify_url}?{urlencode({'token': token})}"
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self._from_email},
            "subject": f"Verify ownership of {listing_name}",
            "content": [
                {"type": "text/plain", "value": _text_body(listing_name, link)},
                {"type": "text/html", "value": _html_body(listing_name, link)},
            ],
        }

        try:
            response = self._client.post(
                SENDGRID_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException:
            logger.error("[Email][SendGrid] Timed out after %.1fs", self._timeout)
            return False
        except httpx.HTTPError as e:
            logger.error("[Email][SendGrid] Transport error: %s", e)
            return False

        if response.status_code in (200, 201, 202):
            logger.info("[Email][SendGrid] Sent to %s***", to[:3])
            return True

        logger.error("[Email][SendGrid] Failed: %s - %s", response.status_code, response.text)
        return False

    def close(self) -> None:
        self._client.close()


def _text_body(listing_name: str, link: str) -> str:
    return (
        f"Please open the link below to verify your ownership of {listing_name}:\n\n"
        f"{link}\n\n"
        "This link can be used once and will expire."
    )


def _html_body(listing_name: str, link: str) -> str:
    name = escape(listing_name)
    href = escape(link, quote=True)
    return (
        "<h1>Listing Ownership Verification</h1>"
        f"<p>Please click the link below to verify your ownership of {name}:</p>"
        f'<a href="{href}">{href}</a>'
        "<p>This link can be used once and will expire.</p>"
    )
