# app/services/quotes/audit_recorder.py
"""
Quote audit trail.

``diff_quote`` turns a before/after pair of ``QuoteSnapshot`` into one draft
per changed category; the ``*_event`` builders cover changes that are not
field diffs (creation, sends, artwork, customer decisions). Entries are added
to the caller's session so they commit with the mutation they describe.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_audit_logger
from app.models.quotes.quote_models import Quote
from app.models.quotes.quote_audit_models import QuoteAuditLog
from app.models.enums.audit_action import QuoteAuditAction, AuditActorType
from app.models.enums.quote_status import QuoteStatus
from app.schemas.quotes.audit_schemas import QuoteAuditOut, QuoteAuditListData
from app.services.quotes.actors import CustomerActor
from app.services.quotes.quote_store import QuoteSnapshot, load_quote

audit_logger = get_audit_logger()

A = QuoteAuditAction

GENERAL_LABELS = {
    "title": "title",
    "notes": "notes",
    "internal_notes": "internal notes",
    "valid_until": "valid until",
    "requested_delivery": "requested delivery",
    "artwork_required": "artwork required",
    "customer_phone": "customer phone",
    "customer_company": "customer company",
}


@dataclass(frozen=True)
class AuditDraft:
    action: QuoteAuditAction
    description: str
    previous_value: Optional[dict] = None
    new_value: Optional[dict] = None
    context: Optional[dict] = field(default=None)


def _json(value: Any) -> Any:
    """Make a value safe for a JSON column."""
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json(v) for v in value]
    return value


def _actor_desc(actor) -> str:
    if actor is None:
        return "system"
    if isinstance(actor, CustomerActor):
        return "customer"
    return actor.name or actor.email


# =====================================================
# DIFF
# =====================================================

def _customer_key(s: QuoteSnapshot):
    if s.customer_id is not None:
        return ("linked", s.customer_id)
    return ("snapshot", s.customer_name or None, (s.customer_email or "").lower() or None)


def _customer_label(s: QuoteSnapshot) -> str:
    return s.customer_name or s.customer_email or "None"


def _customer_value(s: QuoteSnapshot) -> dict:
    return {
        "customer_id": s.customer_id,
        "name": s.customer_name,
        "email": s.customer_email,
    }


def _items_value(items: tuple) -> dict:
    return {
        "item_count": len(items),
        "items": [
            {"name": name, "quantity": qty, "unit_price": _json(price)}
            for name, qty, price in items
        ],
    }


def _items_description(before: tuple, after: tuple) -> str:
    prev, new = len(before), len(after)
    if new > prev:
        return f"{new - prev} line item(s) added"
    if new < prev:
        return f"{prev - new} line item(s) removed"
    return "Line items modified"


def diff_quote(
    before: QuoteSnapshot,
    after: QuoteSnapshot,
    actor=None,
) -> list[AuditDraft]:
    drafts: list[AuditDraft] = []

    # -------------------------
    # Status
    # -------------------------
    if before.status != after.status:
        drafts.append(status_change_event(before.status, after.status, actor))

    # -------------------------
    # Customer
    # -------------------------
    if _customer_key(before) != _customer_key(after):
        drafts.append(
            AuditDraft(
                action=A.CUSTOMER_CHANGED,
                description=(
                    f'Customer changed from "{_customer_label(before)}" '
                    f'to "{_customer_label(after)}"'
                ),
                previous_value=_customer_value(before),
                new_value=_customer_value(after),
            )
        )

    # -------------------------
    # Owner
    # -------------------------
    if before.owner_id != after.owner_id:
        prev_name = before.owner_name or "Unassigned"
        new_name = after.owner_name or "Unassigned"
        drafts.append(
            AuditDraft(
                action=A.OWNER_CHANGED,
                description=f'Owner changed from "{prev_name}" to "{new_name}"',
                previous_value={"owner_id": before.owner_id, "owner": prev_name},
                new_value={"owner_id": after.owner_id, "owner": new_name},
            )
        )

    # -------------------------
    # Line items (ordered name/qty/price)
    # -------------------------
    if before.line_items != after.line_items:
        drafts.append(
            AuditDraft(
                action=A.LINE_ITEMS_CHANGED,
                description=_items_description(before.line_items, after.line_items),
                previous_value=_items_value(before.line_items),
                new_value=_items_value(after.line_items),
            )
        )

    # -------------------------
    # Pricing parameters (computed discount is not compared)
    # -------------------------
    pricing_changed = [
        f for f in ("discount_value", "discount_type", "tax_rate", "shipping")
        if getattr(before, f) != getattr(after, f)
    ]
    if pricing_changed:
        drafts.append(
            AuditDraft(
                action=A.PRICING_UPDATED,
                description=f"Pricing updated: {', '.join(pricing_changed)}",
                previous_value={f: _json(getattr(before, f)) for f in pricing_changed},
                new_value={f: _json(getattr(after, f)) for f in pricing_changed},
                context={"previous_total": _json(before.total), "new_total": _json(after.total)},
            )
        )

    # -------------------------
    # General fields -> one entry
    # -------------------------
    # snapshot contact details only count while no customer is linked
    linked = before.customer_id is not None or after.customer_id is not None
    general_changed = [
        f for f in GENERAL_LABELS
        if getattr(before, f) != getattr(after, f)
        and not (linked and f in ("customer_phone", "customer_company"))
    ]
    if general_changed:
        drafts.append(
            AuditDraft(
                action=A.GENERAL_UPDATE,
                description="Updated " + ", ".join(GENERAL_LABELS[f] for f in general_changed),
                previous_value={f: _json(getattr(before, f)) for f in general_changed},
                new_value={f: _json(getattr(after, f)) for f in general_changed},
                context={"fields": general_changed},
            )
        )

    return drafts


# =====================================================
# EVENT BUILDERS
# =====================================================

def created_event(after: QuoteSnapshot) -> AuditDraft:
    return AuditDraft(
        action=A.CREATED,
        description=f"Quote {after.quote_number} created",
        new_value={
            "status": after.status.value,
            "customer": _customer_value(after),
            "line_items": _items_value(after.line_items)["item_count"],
            "total": _json(after.total),
        },
    )


def status_change_event(
    previous: QuoteStatus,
    new: QuoteStatus,
    actor=None,
) -> AuditDraft:
    return AuditDraft(
        action=A.STATUS_CHANGE,
        description=(
            f"Status changed from {QuoteStatus(previous).value} "
            f"to {QuoteStatus(new).value} by {_actor_desc(actor)}"
        ),
        previous_value={"status": QuoteStatus(previous).value},
        new_value={"status": QuoteStatus(new).value},
    )


def quote_sent_event(recipient: str) -> AuditDraft:
    return AuditDraft(
        action=A.QUOTE_SENT,
        description=f"Quote sent to {recipient}",
        context={"recipient_email": recipient},
    )


def artwork_uploaded_event(version: int, file_name: str | None, url: str) -> AuditDraft:
    return AuditDraft(
        action=A.ARTWORK_UPLOADED,
        description=f"Artwork uploaded: {file_name or url}",
        new_value={"version": version, "file_name": file_name, "url": url},
    )


def artwork_updated_event(
    previous_version: int,
    previous_status: str,
    version: int,
    file_name: str | None,
    url: str,
) -> AuditDraft:
    return AuditDraft(
        action=A.ARTWORK_UPDATED,
        description=f"Artwork updated to version {version}: {file_name or url}",
        previous_value={"version": previous_version, "status": _json(previous_status)},
        new_value={"version": version, "file_name": file_name, "url": url},
    )


def artwork_sent_event(recipient: str, version: int) -> AuditDraft:
    return AuditDraft(
        action=A.ARTWORK_SENT,
        description=f"Artwork version {version} sent to {recipient} for approval",
        new_value={"version": version},
        context={"recipient_email": recipient},
    )


def artwork_approved_event(version: int) -> AuditDraft:
    return AuditDraft(
        action=A.ARTWORK_APPROVED,
        description=f"Artwork version {version} approved by customer",
        new_value={"version": version, "status": "APPROVED"},
    )


def artwork_declined_event(version: int, notes: str | None) -> AuditDraft:
    return AuditDraft(
        action=A.ARTWORK_DECLINED,
        description=f"Artwork version {version} declined by customer",
        new_value={"version": version, "status": "DECLINED", "notes": notes},
    )


def artwork_removed_event(version: int, file_name: str | None, url: str | None) -> AuditDraft:
    return AuditDraft(
        action=A.ARTWORK_REMOVED,
        description=f"Artwork removed: {file_name or url}",
        previous_value={"version": version, "file_name": file_name, "url": url},
    )


# =====================================================
# PERSISTENCE
# =====================================================

def record_audit_entries(
    db: AsyncSession,
    quote: Quote,
    drafts: list[AuditDraft],
    actor=None,
) -> list[QuoteAuditLog]:
    """
    Stage entries on the caller's session. If they cannot be built the
    mutation still goes ahead; the gap is left in the audit log for
    reconciliation.
    """
    if not drafts:
        return []

    try:
        entries = [
            QuoteAuditLog(
                quote_id=quote.id,
                quote_number=quote.quote_number,
                action=d.action,
                description=d.description,
                actor_type=actor.actor_type if actor is not None else AuditActorType.SYSTEM,
                actor_id=getattr(actor, "id", None),
                actor_name=getattr(actor, "name", None),
                actor_email=getattr(actor, "email", None),
                previous_value=_json(d.previous_value),
                new_value=_json(d.new_value),
                context=_json(d.context),
            )
            for d in drafts
        ]
    except Exception:
        # the default formatter drops extras; the message alone must name the quote
        audit_logger.warning(
            "Audit entries could not be built for quote %s (id=%s); change saved without them",
            getattr(quote, "quote_number", None),
            getattr(quote, "id", None),
            extra={
                "quote_id": getattr(quote, "id", None),
                "actions": [getattr(d, "action", None) for d in drafts],
            },
            exc_info=True,
        )
        return []

    db.add_all(entries)
    return entries


def diff_or_warn(
    quote: Quote,
    before: QuoteSnapshot,
    after: QuoteSnapshot,
    actor=None,
) -> list[AuditDraft]:
    """``diff_quote`` that logs instead of raising, so the update still saves."""
    try:
        return diff_quote(before, after, actor)
    except Exception:
        audit_logger.warning(
            "Audit diff failed for quote %s (id=%s); change saved without it",
            quote.quote_number,
            quote.id,
            extra={"quote_id": quote.id},
            exc_info=True,
        )
        return []


# =====================================================
# LISTING
# =====================================================

async def list_audit_entries(
    db: AsyncSession,
    quote_id: int,
) -> QuoteAuditListData:
    await load_quote(db, quote_id)

    total = await db.scalar(
        select(func.count(QuoteAuditLog.id)).where(QuoteAuditLog.quote_id == quote_id)
    )
    result = await db.execute(
        select(QuoteAuditLog)
        .where(QuoteAuditLog.quote_id == quote_id)
        .order_by(desc(QuoteAuditLog.created_at), desc(QuoteAuditLog.id))
    )

    return QuoteAuditListData(
        total=total or 0,
        items=[QuoteAuditOut.model_validate(e) for e in result.scalars().all()],
    )
