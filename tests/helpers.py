from decimal import Decimal

from app.core.security import create_access_token
from app.schemas.quotes.quote_schemas import LineItemIn, QuoteCreate
from app.services.notifications.email_sender import EmailResult, EmailSender
from app.services.quotes.actors import InternalActor


class FakeEmailSender(EmailSender):
    def __init__(self):
        self.sent = []
        self.fail_with = None

    async def send(self, message):
        if self.fail_with:
            return EmailResult(success=False, error=self.fail_with)
        self.sent.append(message)
        return EmailResult(success=True, message_id=f"msg-{len(self.sent)}")


class FakeTracker:
    def __init__(self):
        self.calls = []

    async def track(self, **kwargs):
        self.calls.append(kwargs)

    @property
    def codes(self):
        return [c["code"] for c in self.calls]


def make_item(**overrides) -> LineItemIn:
    data = {"name": "Vinyl banner", "quantity": 10, "unit_price": Decimal("12.00")}
    data.update(overrides)
    return LineItemIn(**data)


def make_quote(**overrides) -> QuoteCreate:
    data = {
        "customer_name": "Walk-in Wendy",
        "customer_email": "wendy@example.com",
        "title": "Shop front banners",
        "items": [make_item()],
    }
    data.update(overrides)
    return QuoteCreate(**data)


def auth_headers(actor: InternalActor) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(actor.email, 0)}"}
