# app/services/notifications/quote_notifier.py

from fastapi import Depends

from app.core.site import SiteSettings, get_site_settings
from app.models.quotes.quote_models import Quote
from app.services.notifications.email_sender import (
    EmailMessage,
    EmailResult,
    EmailSender,
    get_email_sender,
)
from app.services.quotes.quote_store import resolve_customer_email
from app.utils.email_templates.quote_emails import (
    render_quote_email,
    render_artwork_email,
    render_quote_decision_email,
    render_artwork_decision_email,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _greeting_name(quote: Quote) -> str | None:
    if quote.customer is not None:
        return quote.customer.contact_name
    return quote.customer_name


class QuoteNotifier:
    """
    Renders and dispatches quote emails. Every method returns an
    ``EmailResult``; delivery problems are logged, never raised, so a
    committed state change is never undone by a failed email.
    """

    def __init__(self, sender: EmailSender, site: SiteSettings):
        self.sender = sender
        self.site = site

    async def _dispatch(self, kind: str, quote: Quote, to: str, subject: str, html: str) -> EmailResult:
        try:
            result = await self.sender.send(
                EmailMessage(
                    to=to,
                    subject=subject,
                    html=html,
                    reply_to=self.site.contact_email or None,
                )
            )
        except Exception as e:
            logger.warning(
                "Email dispatch failed",
                extra={"kind": kind, "quote_id": quote.id},
                exc_info=True,
            )
            return EmailResult(success=False, error=str(e) or e.__class__.__name__)

        if result.success:
            logger.info("Email sent", extra={"kind": kind, "quote_id": quote.id})
        else:
            logger.warning(
                "Email not delivered",
                extra={"kind": kind, "quote_id": quote.id, "error": result.error},
            )
        return result

    # -------------------------
    # Customer facing
    # -------------------------
    async def send_quote(self, quote: Quote, recipient: str) -> EmailResult:
        try:
            subject, html = render_quote_email(quote, self.site, _greeting_name(quote))
        except Exception as e:
            logger.warning("Quote email could not be rendered", extra={"quote_id": quote.id}, exc_info=True)
            return EmailResult(success=False, error=str(e))
        return await self._dispatch("quote", quote, recipient, subject, html)

    async def artwork_ready(self, quote: Quote, recipient: str | None = None) -> EmailResult:
        recipient = recipient or resolve_customer_email(quote)
        if not recipient:
            return EmailResult(success=False, error="No customer email")
        try:
            subject, html = render_artwork_email(quote, self.site, _greeting_name(quote))
        except Exception as e:
            logger.warning("Artwork email could not be rendered", extra={"quote_id": quote.id}, exc_info=True)
            return EmailResult(success=False, error=str(e))
        return await self._dispatch("artwork_approval", quote, recipient, subject, html)

    # -------------------------
    # Internal (owner)
    # -------------------------
    def _owner_recipient(self, quote: Quote) -> tuple[str | None, str | None]:
        if quote.owner is not None and quote.owner.email:
            return quote.owner.email, quote.owner.name
        return (self.site.contact_email or None), None

    async def quote_decision(self, quote: Quote, approved: bool) -> EmailResult:
        to, name = self._owner_recipient(quote)
        if not to:
            logger.info("No owner email for quote notification", extra={"quote_id": quote.id})
            return EmailResult(success=True)
        try:
            subject, html = render_quote_decision_email(quote, self.site, name, approved)
        except Exception as e:
            logger.warning("Owner email could not be rendered", extra={"quote_id": quote.id}, exc_info=True)
            return EmailResult(success=False, error=str(e))
        return await self._dispatch("quote_decision", quote, to, subject, html)

    async def artwork_decision(self, quote: Quote, approved: bool, notes: str | None = None) -> EmailResult:
        to, name = self._owner_recipient(quote)
        if not to:
            logger.info("No owner email for artwork notification", extra={"quote_id": quote.id})
            return EmailResult(success=True)
        try:
            subject, html = render_artwork_decision_email(quote, self.site, name, approved, notes)
        except Exception as e:
            logger.warning("Owner email could not be rendered", extra={"quote_id": quote.id}, exc_info=True)
            return EmailResult(success=False, error=str(e))
        return await self._dispatch("artwork_decision", quote, to, subject, html)


def get_quote_notifier(
    sender: EmailSender = Depends(get_email_sender),
    site: SiteSettings = Depends(get_site_settings),
) -> QuoteNotifier:
    return QuoteNotifier(sender, site)
