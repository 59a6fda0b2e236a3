"""Email adapters - Claim token delivery."""

from src.config.settings import Settings

from .console import ConsoleEmailSender
from .sendgrid import SendGridEmailSender

__all__ = ["ConsoleEmailSender", "SendGridEmailSender", "build_email_sender"]


def build_email_sender(settings: Settings) -> ConsoleEmailSender | SendGridEmailSender:
    """
    Return the sender selected by ``settings.email_provider``.

    Raises:
        ValueError: sendgrid selected without ``sendgrid_api_key``
    """
    if settings.email_provider.lower() == "sendgrid":
        if not settings.sendgrid_api_key:
            raise ValueError("EMAIL_PROVIDER=sendgrid requires SENDGRID_API_KEY")
        return SendGridEmailSender(
            api_key=settings.sendgrid_api_key,
            from_email=settings.email_from,
            verify_url=settings.claim_verify_url,
            timeout=settings.email_timeout_seconds,
        )
    return ConsoleEmailSender(verify_url=settings.claim_verify_url)
