# app/services/notifications/email_sender.py

from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import (
    EMAIL_API_URL,
    EMAIL_API_KEY,
    EMAIL_FROM,
    EMAIL_TIMEOUT_SECONDS,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    text: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailSender:
    """Outbound email. Implementations report failures in the result, they do not raise."""

    async def send(self, message: EmailMessage) -> EmailResult:
        raise NotImplementedError


class DisabledEmailSender(EmailSender):
    async def send(self, message: EmailMessage) -> EmailResult:
        logger.warning(
            "Email delivery not configured; message dropped",
            extra={"subject": message.subject},
        )
        return EmailResult(success=False, error="Email delivery is not configured")


class HttpEmailSender(EmailSender):
    """Posts messages to a transactional email relay over HTTPS."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        from_address: str,
        timeout: float = 10.0,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = timeout

    async def send(self, message: EmailMessage) -> EmailResult:
        payload = {
            "from": self.from_address,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text
        if message.reply_to:
            payload["reply_to"] = message.reply_to

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("Email relay timed out", extra={"subject": message.subject})
            return EmailResult(success=False, error="Email relay timed out")
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Email relay rejected message",
                extra={"status_code": e.response.status_code, "subject": message.subject},
            )
            return EmailResult(success=False, error=f"Email relay returned {e.response.status_code}")
        except httpx.RequestError as e:
            logger.warning("Email relay unreachable", extra={"error": str(e)})
            return EmailResult(success=False, error="Email relay unreachable")

        message_id = None
        if response.headers.get("content-type", "").startswith("application/json"):
            body = response.json()
            if isinstance(body, dict):
                message_id = body.get("id")

        return EmailResult(success=True, message_id=message_id)


def get_email_sender() -> EmailSender:
    if not EMAIL_API_URL:
        return DisabledEmailSender()
    return HttpEmailSender(
        api_url=EMAIL_API_URL,
        api_key=EMAIL_API_KEY,
        from_address=EMAIL_FROM,
        timeout=EMAIL_TIMEOUT_SECONDS,
    )
