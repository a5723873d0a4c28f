from decimal import Decimal

import pytest
from sqlalchemy import select, func

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.core.db import AsyncSessionLocal
from app.models.base.mixins import utcnow
from app.models.enums.audit_action import AuditActorType, QuoteAuditAction as A
from app.models.enums.discount_type import DiscountType
from app.models.enums.quote_status import QuoteStatus
from app.models.quotes.quote_audit_models import QuoteAuditLog
from app.models.quotes.quote_models import Quote, QuoteLineItem
from app.schemas.quotes.quote_schemas import QuoteUpdate
from app.services.quotes import quote_service as svc
from app.services.quotes.audit_recorder import list_audit_entries
from tests.helpers import make_item, make_quote


async def _actions(db, quote_id):
    data = await list_audit_entries(db, quote_id)
    return [i.action for i in reversed(data.items)]


# =====================================================
# CREATE
# =====================================================

async def test_create_prices_and_numbers_the_quote(db, actors, tracker):
    payload = make_quote(
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        tax_rate=Decimal("8"),
        shipping=Decimal("15"),
    )

    q = await svc.create_quote(db, payload, actors["admin"], tracker)

    assert q.quote_number == f"Q{utcnow().year}-0001"
    assert q.status == QuoteStatus.PENDING
    assert q.version == 1
    assert q.subtotal == Decimal("120.00")
    assert q.discount == Decimal("12.00")
    assert q.tax == Decimal("8.64")
    assert q.total == Decimal("131.64")
    assert q.customer.is_linked is False
    assert q.customer.email == "wendy@example.com"
    assert q.created_by_id == actors["admin"].id
    assert [i.name for i in q.line_items] == ["Vinyl banner"]

    entries = (await list_audit_entries(db, q.id)).items
    assert [e.action for e in entries] == [A.CREATED]
    assert entries[0].actor_type == AuditActorType.ADMIN
    assert tracker.codes == [ActivityCode.CREATE_QUOTE]


async def test_numbers_increment(db, actors):
    first = await svc.create_quote(db, make_quote(), actors["admin"])
    second = await svc.create_quote(db, make_quote(), actors["admin"])

    assert int(second.quote_number.split("-")[1]) == int(first.quote_number.split("-")[1]) + 1


async def test_number_collision_is_retried(db, actors, monkeypatch):
    first = await svc.create_quote(db, make_quote(), actors["admin"])
    next_number = svc.generate_quote_number
    calls = []

    async def collide_once(session, year=None):
        calls.append(year)
        if len(calls) == 1:
            return first.quote_number
        return await next_number(session, year)

    monkeypatch.setattr(svc, "generate_quote_number", collide_once)

    second = await svc.create_quote(db, make_quote(title="Second job"), actors["admin"])

    assert len(calls) == 2
    assert second.quote_number != first.quote_number
    assert second.title == "Second job"
    assert await db.scalar(select(func.count(Quote.id))) == 2
    assert await _actions(db, second.id) == [A.CREATED]


async def test_number_allocation_gives_up(db, actors, monkeypatch):
    first = await svc.create_quote(db, make_quote(), actors["admin"])

    async def always_taken(session, year=None):
        return first.quote_number

    monkeypatch.setattr(svc, "generate_quote_number", always_taken)
    monkeypatch.setattr(svc, "QUOTE_NUMBER_MAX_ATTEMPTS", 2)

    with pytest.raises(ConflictException) as exc:
        await svc.create_quote(db, make_quote(title="Second job"), actors["admin"])
    assert exc.value.error_code == ErrorCode.QUOTE_NUMBER_EXHAUSTED
    assert await db.scalar(select(func.count(Quote.id))) == 1


async def test_create_with_linked_customer(db, actors, customer):
    q = await svc.create_quote(
        db,
        make_quote(customer_id=customer.id, customer_name=None, customer_email=None),
        actors["admin"],
    )

    assert q.customer.is_linked is True
    assert q.customer.customer_id == customer.id
    assert q.customer.company == "Acme Signs"


async def test_create_requires_a_customer(db, actors):
    with pytest.raises(ValidationException) as exc:
        await svc.create_quote(db, make_quote(customer_name=None, customer_email=None), actors["admin"])
    assert exc.value.error_code == ErrorCode.QUOTE_CUSTOMER_REQUIRED


async def test_create_rejects_both_customer_sources(db, actors, customer):
    with pytest.raises(ConflictException) as exc:
        await svc.create_quote(db, make_quote(customer_id=customer.id), actors["admin"])
    assert exc.value.error_code == ErrorCode.QUOTE_CUSTOMER_CONFLICT


async def test_create_rejects_unknown_customer(db, actors):
    with pytest.raises(NotFoundException) as exc:
        await svc.create_quote(
            db, make_quote(customer_id=999, customer_name=None, customer_email=None), actors["admin"]
        )
    assert exc.value.error_code == ErrorCode.CUSTOMER_NOT_FOUND


async def test_create_requires_line_items(db, actors):
    with pytest.raises(ValidationException):
        await svc.create_quote(db, make_quote(items=[]), actors["admin"])


async def test_create_rejects_invalid_pricing_without_writing(db, actors):
    payload = make_quote(discount_type=DiscountType.FIXED, discount_value=Decimal("500"))

    with pytest.raises(ValidationException) as exc:
        await svc.create_quote(db, payload, actors["admin"])

    assert exc.value.error_code == ErrorCode.INVALID_PRICING
    assert exc.value.details == {"field": "discount_value"}
    assert (await svc.list_quotes(db)).total == 0


# =====================================================
# READ
# =====================================================

async def test_list_filters_and_search(db, actors, customer):
    await svc.create_quote(db, make_quote(title="Window decals"), actors["admin"])
    await svc.create_quote(
        db,
        make_quote(customer_id=customer.id, customer_name=None, customer_email=None, title="Trade show"),
        actors["admin"],
    )

    assert (await svc.list_quotes(db)).total == 2
    assert [i.title for i in (await svc.list_quotes(db, search="decal")).items] == ["Window decals"]
    assert [i.title for i in (await svc.list_quotes(db, search="acme")).items] == ["Trade show"]
    assert (await svc.list_quotes(db, customer_id=customer.id)).total == 1
    assert (await svc.list_quotes(db, status=QuoteStatus.SENT)).total == 0

    linked = (await svc.list_quotes(db, customer_id=customer.id)).items[0]
    assert linked.customer_email == "carla@acme.com"
    assert linked.items_count == 1


async def test_list_rejects_unknown_sort(db):
    with pytest.raises(ValidationException):
        await svc.list_quotes(db, sort_by="secret")


async def test_get_missing_quote(db):
    with pytest.raises(NotFoundException):
        await svc.get_quote(db, 12345)


# =====================================================
# UPDATE
# =====================================================

async def test_update_records_one_entry_per_category(db, actors, tracker):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    updated = await svc.update_quote(
        db,
        q.id,
        QuoteUpdate(
            title="Bigger banners",
            notes="Hemmed edges",
            tax_rate=Decimal("8"),
            items=[make_item(quantity=20)],
            version=q.version,
        ),
        actors["admin"],
        tracker,
    )

    assert updated.version == q.version + 1
    assert updated.subtotal == Decimal("240.00")
    assert updated.total == Decimal("259.20")
    assert await _actions(db, q.id) == [
        A.CREATED,
        A.LINE_ITEMS_CHANGED,
        A.PRICING_UPDATED,
        A.GENERAL_UPDATE,
    ]
    assert tracker.codes == [ActivityCode.UPDATE_QUOTE]


async def test_replacing_items_leaves_no_orphans(db, actors):
    q = await svc.create_quote(db, make_quote(items=[make_item(), make_item(name="Decal")]), actors["admin"])

    await svc.update_quote(db, q.id, QuoteUpdate(items=[make_item(name="Poster")]), actors["admin"])

    count = await db.scalar(select(func.count(QuoteLineItem.id)))
    assert count == 1


async def test_no_op_update_changes_nothing(db, actors, tracker):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    same = await svc.update_quote(
        db, q.id, QuoteUpdate(title=q.title, items=[make_item()]), actors["admin"], tracker
    )

    assert same.version == q.version
    assert await _actions(db, q.id) == [A.CREATED]
    assert tracker.codes == []


async def test_item_discount_alone_is_saved(db, actors, tracker):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    updated = await svc.update_quote(
        db, q.id, QuoteUpdate(items=[make_item(discount=Decimal("20"))]), actors["admin"], tracker
    )

    assert updated.line_items[0].discount == Decimal("20.00")
    assert updated.subtotal == Decimal("100.00")
    assert updated.total == Decimal("100.00")
    assert updated.version == q.version + 1

    stored = await svc.get_quote(db, q.id)
    assert stored.total == Decimal("100.00")
    assert tracker.codes == [ActivityCode.UPDATE_QUOTE]


async def test_item_details_alone_are_saved(db, actors):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    await svc.update_quote(
        db,
        q.id,
        QuoteUpdate(items=[make_item(description="Double sided", sku="BAN-1")]),
        actors["admin"],
    )

    stored = await svc.get_quote(db, q.id)
    assert stored.line_items[0].description == "Double sided"
    assert stored.line_items[0].sku == "BAN-1"
    assert stored.version == q.version + 1
    assert stored.total == q.total


async def test_stale_version_is_rejected(db, actors):
    q = await svc.create_quote(db, make_quote(), actors["admin"])
    await svc.update_quote(db, q.id, QuoteUpdate(title="One"), actors["admin"])

    with pytest.raises(ConflictException) as exc:
        await svc.update_quote(db, q.id, QuoteUpdate(title="Two", version=q.version), actors["admin"])
    assert exc.value.error_code == ErrorCode.QUOTE_VERSION_CONFLICT


async def test_status_update_stamps_and_tracks(db, actors, tracker):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    approved = await svc.update_quote(
        db, q.id, QuoteUpdate(status=QuoteStatus.APPROVED), actors["admin"], tracker
    )

    assert approved.status == QuoteStatus.APPROVED
    assert approved.approved_at is not None
    assert await _actions(db, q.id) == [A.CREATED, A.STATUS_CHANGE]
    assert tracker.codes == [ActivityCode.CHANGE_QUOTE_STATUS]
    assert tracker.calls[0]["new_status"] == "APPROVED"


async def test_invalid_transition_applies_nothing(db, actors):
    q = await svc.create_quote(db, make_quote(), actors["admin"])
    await svc.update_quote(db, q.id, QuoteUpdate(status=QuoteStatus.DECLINED), actors["admin"])

    with pytest.raises(ConflictException) as exc:
        await svc.update_quote(
            db, q.id, QuoteUpdate(status=QuoteStatus.SENT, title="Should not stick"), actors["admin"]
        )
    assert exc.value.error_code == ErrorCode.QUOTE_INVALID_TRANSITION

    await db.rollback()
    current = await svc.get_quote(db, q.id)
    assert current.title == "Shop front banners"
    assert current.status == QuoteStatus.DECLINED


async def test_archiving_requires_super_admin(db, actors):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    with pytest.raises(ForbiddenException):
        await svc.update_quote(db, q.id, QuoteUpdate(status=QuoteStatus.ARCHIVED), actors["admin"])
    await db.rollback()

    archived = await svc.update_quote(db, q.id, QuoteUpdate(status=QuoteStatus.ARCHIVED), actors["super"])
    assert archived.status == QuoteStatus.ARCHIVED


async def test_owner_and_customer_changes(db, actors, customer):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    updated = await svc.update_quote(
        db,
        q.id,
        QuoteUpdate(customer_id=customer.id, owner_id=actors["admin"].id),
        actors["admin"],
    )

    assert updated.customer.is_linked is True
    assert updated.owner.email == "admin@shop.com"
    assert await _actions(db, q.id) == [A.CREATED, A.CUSTOMER_CHANGED, A.OWNER_CHANGED]


async def test_unknown_owner_is_rejected(db, actors):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    with pytest.raises(NotFoundException) as exc:
        await svc.update_quote(db, q.id, QuoteUpdate(owner_id=999), actors["admin"])
    assert exc.value.error_code == ErrorCode.OWNER_NOT_FOUND


# =====================================================
# SEND
# =====================================================

async def test_send_quote(db, actors, site, notifier, sender, tracker):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    result = await svc.send_quote(db, q.id, actors["admin"], site, notifier, tracker)

    assert result.email_sent is True
    assert result.quote.status == QuoteStatus.SENT
    assert result.quote.sent_at is not None
    assert result.quote_url.startswith("https://shop.test/quote/")

    [message] = sender.sent
    assert message.to == "wendy@example.com"
    assert q.quote_number in message.subject
    assert f"{result.quote_url}?action=approve" in message.html
    assert "$120.00" in message.html

    assert await _actions(db, q.id) == [A.CREATED, A.QUOTE_SENT, A.STATUS_CHANGE]
    assert tracker.codes == [ActivityCode.CHANGE_QUOTE_STATUS]


async def test_resend_keeps_the_token(db, actors, site, notifier):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    first = await svc.send_quote(db, q.id, actors["admin"], site, notifier)
    second = await svc.send_quote(db, q.id, actors["admin"], site, notifier)

    assert first.quote_url == second.quote_url
    assert await _actions(db, q.id) == [A.CREATED, A.QUOTE_SENT, A.STATUS_CHANGE, A.QUOTE_SENT]


async def test_failed_delivery_does_not_advance_status(db, actors, site, notifier, sender):
    sender.fail_with = "relay down"
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    result = await svc.send_quote(db, q.id, actors["admin"], site, notifier)

    assert result.email_sent is False
    assert "relay down" in result.message
    assert result.quote.status == QuoteStatus.PENDING
    assert result.quote.sent_at is None
    assert result.quote.version == q.version + 1
    assert await _actions(db, q.id) == [A.CREATED]


async def test_send_needs_customer_email(db, actors, site, notifier):
    q = await svc.create_quote(db, make_quote(), actors["admin"])
    await svc.update_quote(
        db, q.id, QuoteUpdate(customer_email=None, customer_name="No Email"), actors["admin"]
    )

    with pytest.raises(ConflictException) as exc:
        await svc.send_quote(db, q.id, actors["admin"], site, notifier)
    assert exc.value.error_code == ErrorCode.NO_CUSTOMER_EMAIL


async def test_send_respects_transitions(db, actors, site, notifier):
    q = await svc.create_quote(db, make_quote(), actors["admin"])
    await svc.update_quote(db, q.id, QuoteUpdate(status=QuoteStatus.APPROVED), actors["admin"])

    with pytest.raises(ConflictException):
        await svc.send_quote(db, q.id, actors["admin"], site, notifier)


class MoveWhileSending:
    """Changes the quote from another session while the email is in flight."""

    def __init__(self, inner, quote_id, status, actor):
        self.inner = inner
        self.quote_id = quote_id
        self.status = status
        self.actor = actor

    async def send_quote(self, quote, recipient):
        async with AsyncSessionLocal() as other:
            await svc.update_quote(other, self.quote_id, QuoteUpdate(status=self.status), self.actor)
        return await self.inner.send_quote(quote, recipient)


async def test_send_does_not_overwrite_a_concurrent_archive(db, actors, site, notifier, sender, tracker):
    q = await svc.create_quote(db, make_quote(), actors["admin"])
    moving = MoveWhileSending(notifier, q.id, QuoteStatus.ARCHIVED, actors["super"])

    result = await svc.send_quote(db, q.id, actors["admin"], site, moving, tracker)

    assert result.email_sent is True
    assert result.quote.status == QuoteStatus.ARCHIVED
    assert result.quote.sent_at is None
    assert "ARCHIVED" in result.message
    assert len(sender.sent) == 1
    assert (await svc.get_quote(db, q.id)).status == QuoteStatus.ARCHIVED
    assert await _actions(db, q.id) == [A.CREATED, A.STATUS_CHANGE, A.QUOTE_SENT]
    assert tracker.codes == []


async def test_send_audits_the_status_it_actually_left(db, actors, site, notifier):
    q = await svc.create_quote(db, make_quote(), actors["admin"])
    moving = MoveWhileSending(notifier, q.id, QuoteStatus.REVIEWING, actors["admin"])

    result = await svc.send_quote(db, q.id, actors["admin"], site, moving)

    assert result.quote.status == QuoteStatus.SENT
    entries = list(reversed((await list_audit_entries(db, q.id)).items))
    assert entries[-1].action == A.STATUS_CHANGE
    assert entries[-1].description.startswith("Status changed from REVIEWING to SENT")


# =====================================================
# DELETE / PRINT
# =====================================================

async def test_delete_keeps_history(db, actors, tracker):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    deleted = await svc.delete_quote(db, q.id, actors["super"], tracker)

    assert deleted.quote_number == q.quote_number
    with pytest.raises(NotFoundException):
        await svc.get_quote(db, q.id)

    rows = (await db.execute(select(QuoteAuditLog))).scalars().all()
    assert len(rows) == 1
    assert rows[0].quote_id is None
    assert rows[0].quote_number == q.quote_number
    assert await db.scalar(select(func.count(QuoteLineItem.id))) == 0
    assert tracker.codes == [ActivityCode.DELETE_QUOTE]


async def test_delete_requires_super_admin(db, actors):
    q = await svc.create_quote(db, make_quote(), actors["admin"])

    with pytest.raises(ForbiddenException):
        await svc.delete_quote(db, q.id, actors["admin"])


async def test_print_quote(db, actors, site):
    q = await svc.create_quote(
        db, make_quote(notes="Deliver <before> Friday", tax_rate=Decimal("8")), actors["admin"]
    )

    file_name, pdf = await svc.print_quote(db, q.id, site)

    assert file_name == f"{q.quote_number}.pdf"
    assert pdf.startswith(b"%PDF")
