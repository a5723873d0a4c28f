# app/services/quotes/approval_gateway.py
"""
Customer-facing quote and artwork approval, reached through the unguessable
tokens mailed to the customer. No login is involved; the token is the
credential, so it is only ever logged masked.

A repeated response never writes: the caller gets the disposition that is
already on record with ``already_responded=True``.
"""

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import ConflictException
from app.models.base.mixins import utcnow
from app.models.enums.artwork_status import ArtworkStatus
from app.models.enums.quote_status import QuoteStatus
from app.models.quotes.quote_models import Quote
from app.schemas.quotes.public_schemas import (
    ArtworkResponseIn,
    PublicArtworkOut,
    PublicLineItemOut,
    PublicQuoteOut,
    PublicResponseOut,
)
from app.services.quotes import audit_recorder as audit
from app.services.quotes.actors import CustomerActor
from app.services.quotes.artwork_ledger import artwork_response_state, infer_artwork_status
from app.services.quotes.quote_store import (
    load_quote_by_access_token,
    load_quote_by_artwork_token,
    resolve_customer_email,
    touch,
)
from app.services.quotes.transitions import ensure_transition
from app.utils.decimal_utils import to_money
from app.utils.logger import get_logger, mask_token

logger = get_logger(__name__)

RESOLVED = {
    QuoteStatus.APPROVED: "approved",
    QuoteStatus.DECLINED: "declined",
}


def quote_disposition(quote: Quote) -> str | None:
    """The customer's answer on record, kept after the quote is archived."""
    status = QuoteStatus(quote.status)
    if status in RESOLVED:
        return RESOLVED[status]
    if status == QuoteStatus.ARCHIVED:
        if quote.approved_at is not None:
            return "approved"
        if quote.declined_at is not None:
            return "declined"
    return None


def quote_response_state(quote: Quote) -> str:
    return quote_disposition(quote) or "pending"


def _quote_already(q: Quote, state: str) -> PublicResponseOut:
    return PublicResponseOut(
        status=q.status,
        response_state=state,
        already_responded=True,
        message=f"This quote has already been {state}.",
        quote_state=state,
    )


def is_expired(quote: Quote, today: date | None = None) -> bool:
    today = today or date.today()
    return quote.valid_until is not None and quote.valid_until < today


def _customer_actor(quote: Quote) -> CustomerActor:
    return CustomerActor(email=resolve_customer_email(quote))


def _ensure_not_expired(quote: Quote) -> None:
    if is_expired(quote):
        raise ConflictException(
            "This quote has expired. Please contact us for an updated quote.",
            ErrorCode.QUOTE_EXPIRED,
            {"valid_until": quote.valid_until.isoformat()},
        )


async def _track_customer_status(tracker, q: Quote, previous: QuoteStatus, actor: CustomerActor) -> None:
    if tracker is None or previous == q.status:
        return
    await tracker.track(
        entity_type="quote",
        entity_id=q.id,
        code=ActivityCode.CHANGE_QUOTE_STATUS,
        old_value={"status": previous.value},
        new_value={"status": q.status.value},
        actor_label=actor.label,
        target_name=q.quote_number,
        old_status=previous.value,
        new_status=q.status.value,
    )


def _can_approve_quote(q: Quote) -> bool:
    return (
        infer_artwork_status(q) == ArtworkStatus.APPROVED
        and QuoteStatus(q.status) not in RESOLVED
        and QuoteStatus(q.status) != QuoteStatus.ARCHIVED
        and not is_expired(q)
    )


# =====================================================
# QUOTE
# =====================================================

async def get_public_quote(db: AsyncSession, token: str) -> PublicQuoteOut:
    q = await load_quote_by_access_token(db, token)

    if q.customer_id is not None and q.customer is not None:
        customer_name, customer_company = q.customer.contact_name, q.customer.company_name
    else:
        customer_name, customer_company = q.customer_name, q.customer_company

    return PublicQuoteOut(
        quote_number=q.quote_number,
        title=q.title,
        notes=q.notes,
        status=q.status,
        customer_name=customer_name,
        customer_company=customer_company,
        valid_until=q.valid_until,
        requested_delivery=q.requested_delivery,
        sent_at=q.sent_at,
        approved_at=q.approved_at,
        declined_at=q.declined_at,
        subtotal=to_money(q.subtotal),
        discount_type=q.discount_type,
        discount_value=q.discount_value,
        discount=to_money(q.discount),
        tax_rate=q.tax_rate,
        tax=to_money(q.tax),
        shipping=to_money(q.shipping),
        total=to_money(q.total),
        line_items=[
            PublicLineItemOut(
                name=i.name,
                description=i.description,
                quantity=i.quantity,
                unit_price=to_money(i.unit_price),
                discount=to_money(i.discount),
                total=to_money(i.total),
            )
            for i in q.line_items
        ],
        response_state=quote_response_state(q),
        is_expired=is_expired(q),
    )


async def _decide_quote(
    db: AsyncSession,
    q: Quote,
    approve: bool,
    notifier,
    tracker,
) -> PublicResponseOut:
    """Shared by the quote page and the post-artwork approval step."""
    actor = _customer_actor(q)
    previous = QuoteStatus(q.status)
    target = QuoteStatus.APPROVED if approve else QuoteStatus.DECLINED

    ensure_transition(previous, target)

    q.status = target
    if approve:
        q.approved_at = utcnow()
    else:
        q.declined_at = utcnow()

    touch(q, actor)
    audit.record_audit_entries(db, q, [audit.status_change_event(previous, target, actor)], actor)
    await db.commit()

    logger.info(
        "Customer responded to quote",
        extra={"quote_id": q.id, "status": target.value, "token": mask_token(q.access_token)},
    )

    await notifier.quote_decision(q, approved=approve)
    await _track_customer_status(tracker, q, previous, actor)

    state = quote_response_state(q)
    return PublicResponseOut(
        status=q.status,
        response_state=state,
        message="Thank you! The quote has been approved." if approve else "The quote has been declined.",
        quote_state=state,
    )


async def respond_to_quote(
    db: AsyncSession,
    token: str,
    action: str,
    notifier,
    tracker=None,
) -> PublicResponseOut:
    q = await load_quote_by_access_token(db, token, for_update=True)
    status = QuoteStatus(q.status)

    state = quote_disposition(q)
    if state is not None:
        # nothing is pending; committing only releases the row lock
        result = _quote_already(q, state)
        await db.commit()
        return result

    if status != QuoteStatus.SENT:
        raise ConflictException(
            "This quote is not awaiting a response",
            ErrorCode.QUOTE_NOT_AWAITING_RESPONSE,
            {"status": status.value},
        )

    _ensure_not_expired(q)

    return await _decide_quote(db, q, action == "approve", notifier, tracker)


# =====================================================
# ARTWORK
# =====================================================

def _ensure_shared(q: Quote) -> None:
    if not q.artwork_url or not q.artwork_sent_at:
        raise ConflictException(
            "Artwork has not been sent for approval",
            ErrorCode.ARTWORK_NOT_SHARED,
        )


async def get_public_artwork(db: AsyncSession, token: str) -> PublicArtworkOut:
    q = await load_quote_by_artwork_token(db, token)
    _ensure_shared(q)

    customer_name = (
        q.customer.contact_name
        if q.customer_id is not None and q.customer is not None
        else q.customer_name
    )

    return PublicArtworkOut(
        quote_number=q.quote_number,
        title=q.title,
        customer_name=customer_name,
        artwork_url=q.artwork_url,
        artwork_file_name=q.artwork_file_name,
        artwork_version=q.artwork_version,
        sent_at=q.artwork_sent_at,
        approved_at=q.artwork_approved_at,
        declined_at=q.artwork_declined_at,
        notes=q.artwork_notes,
        response_state=artwork_response_state(q),
        quote_status=q.status,
        quote_state=quote_response_state(q),
        can_approve_quote=_can_approve_quote(q),
    )


def _artwork_already(q: Quote, state: str) -> PublicResponseOut:
    return PublicResponseOut(
        status=q.status,
        response_state=state,
        already_responded=True,
        message=f"This artwork has already been {state}.",
        quote_state=quote_response_state(q),
        can_approve_quote=_can_approve_quote(q),
    )


async def respond_to_artwork(
    db: AsyncSession,
    token: str,
    payload: ArtworkResponseIn,
    notifier,
    tracker=None,
) -> PublicResponseOut:
    q = await load_quote_by_artwork_token(db, token, for_update=True)
    _ensure_shared(q)

    if payload.target == "quote":
        return await _respond_to_quote_after_artwork(db, q, payload.action, notifier, tracker)

    state = artwork_response_state(q)
    if state != "pending":
        result = _artwork_already(q, state)
        await db.commit()
        return result

    approve = payload.action == "approve"
    actor = _customer_actor(q)
    previous = QuoteStatus(q.status)
    now = utcnow()

    # only a quote that is waiting on artwork moves with it
    target = None
    if previous == QuoteStatus.ARTWORK_PENDING:
        target = QuoteStatus.ARTWORK_APPROVED if approve else QuoteStatus.ARTWORK_DECLINED
        ensure_transition(previous, target)

    notes = (payload.notes or "").strip() or None
    if approve:
        q.artwork_approved_at = now
        q.artwork_status = ArtworkStatus.APPROVED
        drafts = [audit.artwork_approved_event(q.artwork_version)]
    else:
        q.artwork_declined_at = now
        q.artwork_notes = notes
        q.artwork_status = ArtworkStatus.DECLINED
        drafts = [audit.artwork_declined_event(q.artwork_version, notes)]

    if target is not None:
        q.status = target
        drafts.append(audit.status_change_event(previous, target, actor))

    touch(q, actor)
    audit.record_audit_entries(db, q, drafts, actor)
    await db.commit()

    logger.info(
        "Customer responded to artwork",
        extra={
            "quote_id": q.id,
            "artwork_version": q.artwork_version,
            "approved": approve,
            "token": mask_token(q.artwork_token),
        },
    )

    await notifier.artwork_decision(q, approved=approve, notes=notes)
    await _track_customer_status(tracker, q, previous, actor)

    can_approve = _can_approve_quote(q)
    if approve:
        message = "Thank you! The artwork has been approved."
        if can_approve:
            message += " You can now approve the quote."
    else:
        message = "Thanks for your feedback. We will revise the artwork and send a new version."

    return PublicResponseOut(
        status=q.status,
        response_state=artwork_response_state(q),
        message=message,
        quote_state=quote_response_state(q),
        can_approve_quote=can_approve,
    )


async def _respond_to_quote_after_artwork(
    db: AsyncSession,
    q: Quote,
    action: str,
    notifier,
    tracker,
) -> PublicResponseOut:
    if infer_artwork_status(q) != ArtworkStatus.APPROVED:
        raise ConflictException(
            "The artwork must be approved before the quote",
            ErrorCode.ARTWORK_NOT_APPROVED,
        )

    state = quote_disposition(q)
    if state is not None:
        result = _quote_already(q, state)
        await db.commit()
        return result

    _ensure_not_expired(q)

    return await _decide_quote(db, q, action == "approve", notifier, tracker)
