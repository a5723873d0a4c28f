import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from app.models.enums.audit_action import AuditActorType, QuoteAuditAction as A
from app.models.enums.discount_type import DiscountType
from app.models.enums.quote_status import QuoteStatus
from app.models.quotes.quote_audit_models import QuoteAuditLog
from app.models.quotes.quote_models import Quote
from app.services.quotes import audit_recorder as audit
from app.services.quotes.actors import CustomerActor
from app.services.quotes.quote_store import QuoteSnapshot

BASE = QuoteSnapshot(
    quote_number="Q2031-0001",
    status=QuoteStatus.PENDING,
    customer_id=None,
    customer_name="Wendy",
    customer_email="wendy@example.com",
    customer_phone=None,
    customer_company=None,
    owner_id=None,
    owner_name=None,
    line_items=(("Banner", 10, Decimal("12.00")),),
    discount_value=Decimal("0"),
    discount_type=DiscountType.FIXED,
    tax_rate=Decimal("0"),
    shipping=Decimal("0"),
    total=Decimal("120"),
    title="Banners",
    notes=None,
    internal_notes=None,
    valid_until=None,
    requested_delivery=None,
    artwork_required=False,
)


def _actions(drafts):
    return [d.action for d in drafts]


def test_identical_snapshots_produce_nothing():
    assert audit.diff_quote(BASE, replace(BASE)) == []


def test_status_change_names_the_actor():
    after = replace(BASE, status=QuoteStatus.SENT)

    [draft] = audit.diff_quote(BASE, after)

    assert draft.action == A.STATUS_CHANGE
    assert draft.description == "Status changed from PENDING to SENT by system"
    assert draft.previous_value == {"status": "PENDING"}
    assert draft.new_value == {"status": "SENT"}


def test_customer_decision_description():
    draft = audit.status_change_event(QuoteStatus.SENT, QuoteStatus.DECLINED, CustomerActor())
    assert draft.description == "Status changed from SENT to DECLINED by customer"


def test_email_case_is_not_a_customer_change():
    after = replace(BASE, customer_email="WENDY@example.com")
    assert audit.diff_quote(BASE, after) == []


def test_customer_and_owner_changes():
    after = replace(BASE, customer_id=7, customer_name="Carla", owner_id=2, owner_name="Ada")

    drafts = audit.diff_quote(BASE, after)

    assert _actions(drafts) == [A.CUSTOMER_CHANGED, A.OWNER_CHANGED]
    assert drafts[0].description == 'Customer changed from "Wendy" to "Carla"'
    assert drafts[1].description == 'Owner changed from "Unassigned" to "Ada"'


def test_line_item_changes():
    added = replace(BASE, line_items=BASE.line_items + (("Decal", 5, Decimal("2")),))
    repriced = replace(BASE, line_items=(("Banner", 10, Decimal("11.00")),))

    [draft] = audit.diff_quote(BASE, added)
    assert draft.action == A.LINE_ITEMS_CHANGED
    assert draft.description == "1 line item(s) added"
    assert draft.new_value["item_count"] == 2

    [draft] = audit.diff_quote(added, BASE)
    assert draft.description == "1 line item(s) removed"

    [draft] = audit.diff_quote(BASE, repriced)
    assert draft.description == "Line items modified"


def test_pricing_change_carries_totals():
    after = replace(BASE, tax_rate=Decimal("8"), total=Decimal("129.6"))

    [draft] = audit.diff_quote(BASE, after)

    assert draft.action == A.PRICING_UPDATED
    assert draft.previous_value == {"tax_rate": "0"}
    assert draft.new_value == {"tax_rate": "8"}
    assert draft.context == {"previous_total": "120", "new_total": "129.6"}


def test_general_fields_collapse_into_one_entry():
    after = replace(BASE, title="New title", valid_until=date(2031, 5, 1), notes="Rush")

    [draft] = audit.diff_quote(BASE, after)

    assert draft.action == A.GENERAL_UPDATE
    assert draft.context == {"fields": ["title", "notes", "valid_until"]}
    assert draft.new_value["valid_until"] == "2031-05-01"


def test_contact_details_only_count_without_linked_customer():
    unlinked = replace(BASE, customer_phone="555")
    [draft] = audit.diff_quote(BASE, unlinked)
    assert draft.action == A.GENERAL_UPDATE

    linked = replace(BASE, customer_id=3)
    relinked = replace(linked, customer_phone="555")
    assert audit.diff_quote(linked, relinked) == []


def test_categories_come_out_in_a_stable_order():
    after = replace(
        BASE,
        status=QuoteStatus.REVIEWING,
        line_items=(),
        shipping=Decimal("5"),
        title="Other",
    )
    assert _actions(audit.diff_quote(BASE, after)) == [
        A.STATUS_CHANGE,
        A.LINE_ITEMS_CHANGED,
        A.PRICING_UPDATED,
        A.GENERAL_UPDATE,
    ]


async def test_entries_commit_with_the_caller(db, actors):
    q = Quote(quote_number="Q2031-0001", customer_name="W", customer_email="w@example.com")
    db.add(q)
    await db.flush()

    audit.record_audit_entries(db, q, [audit.quote_sent_event("w@example.com")], actors["admin"])
    audit.record_audit_entries(db, q, [audit.artwork_approved_event(2)], CustomerActor())
    await db.commit()

    rows = (await db.execute(select(QuoteAuditLog).order_by(QuoteAuditLog.id))).scalars().all()
    assert [r.action for r in rows] == [A.QUOTE_SENT, A.ARTWORK_APPROVED]
    assert rows[0].actor_type == AuditActorType.ADMIN
    assert rows[0].actor_email == "admin@shop.com"
    assert rows[0].context == {"recipient_email": "w@example.com"}
    assert rows[1].actor_type == AuditActorType.CUSTOMER
    assert rows[1].actor_id is None


async def test_unbuildable_entries_are_logged_not_raised(db, caplog):
    q = Quote(quote_number="Q2031-0001", customer_name="W", customer_email="w@example.com")

    class Broken:
        action = A.GENERAL_UPDATE

    audit_logger = logging.getLogger("app.audit")
    audit_logger.addHandler(caplog.handler)
    try:
        entries = audit.record_audit_entries(db, q, [Broken()])
    finally:
        audit_logger.removeHandler(caplog.handler)

    assert entries == []
    assert "Audit entries could not be built for quote Q2031-0001" in caplog.records[-1].getMessage()


async def test_failed_diff_names_the_quote(caplog):
    q = Quote(quote_number="Q2031-0007", customer_name="W", customer_email="w@example.com")

    audit_logger = logging.getLogger("app.audit")
    audit_logger.addHandler(caplog.handler)
    try:
        drafts = audit.diff_or_warn(q, BASE, replace(BASE, status="NOT_A_STATUS"))
    finally:
        audit_logger.removeHandler(caplog.handler)

    assert drafts == []
    assert "Audit diff failed for quote Q2031-0007" in caplog.records[-1].getMessage()


async def test_listing_is_newest_first(db):
    q = Quote(quote_number="Q2031-0001", customer_name="W", customer_email="w@example.com")
    db.add(q)
    await db.flush()
    audit.record_audit_entries(db, q, [audit.created_event(BASE)])
    await db.commit()
    audit.record_audit_entries(db, q, [audit.quote_sent_event("w@example.com")])
    await db.commit()

    data = await audit.list_audit_entries(db, q.id)

    assert data.total == 2
    assert [i.action for i in data.items] == [A.QUOTE_SENT, A.CREATED]
    assert data.items[1].actor_type == AuditActorType.SYSTEM
