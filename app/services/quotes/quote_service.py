from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, asc, desc, or_
from sqlalchemy.exc import IntegrityError

from app.models.quotes.quote_models import Quote, QuoteLineItem
from app.models.quotes.artwork_version_models import ArtworkVersion
from app.models.quotes.quote_audit_models import QuoteAuditLog
from app.models.customers.customer_models import Customer
from app.models.users.user_models import User
from app.models.enums.quote_status import QuoteStatus
from app.models.enums.discount_type import DiscountType
from app.models.enums.user_role import UserRole
from app.models.base.mixins import utcnow

from app.schemas.quotes.quote_schemas import (
    QuoteCreate,
    QuoteUpdate,
    QuoteOut,
    LineItemOut,
    CustomerRefOut,
    OwnerOut,
    QuoteListData,
    QuoteListItem,
    QuoteSendResult,
    QuoteDeletedOut,
)

from app.core.config import QUOTE_NUMBER_MAX_ATTEMPTS
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.core.site import SiteSettings
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.services.quotes import audit_recorder as audit
from app.services.quotes.actors import InternalActor
from app.services.quotes.pricing import PricingError, calculate_pricing, subtotal_of
from app.services.quotes.quote_store import (
    PRICING_FIELDS,
    apply_fields,
    apply_pricing,
    build_line_items,
    check_version,
    ensure_single_customer_source,
    generate_quote_number,
    load_quote,
    replace_line_items,
    resolve_customer_email,
    snapshot_quote,
    touch,
)
from app.services.quotes.transitions import can_transition, ensure_transition, ensure_role_for_target
from app.utils.decimal_utils import to_money
from app.utils.pdf_generators.quote_pdf import generate_quote_pdf
from app.utils.tokens import generate_token
from app.utils.logger import get_logger, mask_token

logger = get_logger(__name__)

ENTITY = "quote"

# First entry into these states stamps the matching timestamp.
STATUS_TIMESTAMPS = {
    QuoteStatus.SENT: "sent_at",
    QuoteStatus.APPROVED: "approved_at",
    QuoteStatus.DECLINED: "declined_at",
}


# =====================================================
# HELPERS
# =====================================================

def _map_quote(q: Quote) -> QuoteOut:
    if q.customer_id is not None and q.customer is not None:
        customer = CustomerRefOut(
            customer_id=q.customer_id,
            name=q.customer.contact_name,
            email=q.customer.email,
            phone=q.customer.phone,
            company=q.customer.company_name,
            is_linked=True,
        )
    else:
        customer = CustomerRefOut(
            customer_id=None,
            name=q.customer_name,
            email=q.customer_email,
            phone=q.customer_phone,
            company=q.customer_company,
            is_linked=False,
        )

    return QuoteOut(
        id=q.id,
        quote_number=q.quote_number,
        status=q.status,
        customer=customer,
        owner=OwnerOut(id=q.owner.id, name=q.owner.name, email=q.owner.email) if q.owner else None,
        title=q.title,
        notes=q.notes,
        internal_notes=q.internal_notes,
        valid_until=q.valid_until,
        requested_delivery=q.requested_delivery,
        artwork_required=q.artwork_required,
        subtotal=to_money(q.subtotal),
        discount_value=q.discount_value,
        discount_type=q.discount_type,
        discount=to_money(q.discount),
        tax_rate=q.tax_rate,
        tax=to_money(q.tax),
        shipping=to_money(q.shipping),
        total=to_money(q.total),
        sent_at=q.sent_at,
        approved_at=q.approved_at,
        declined_at=q.declined_at,
        last_modified_at=q.last_modified_at,
        artwork_url=q.artwork_url,
        artwork_file_name=q.artwork_file_name,
        artwork_version=q.artwork_version,
        artwork_status=q.artwork_status,
        version=q.version,
        created_by_id=q.created_by_id,
        updated_by_id=q.updated_by_id,
        created_at=q.created_at,
        updated_at=q.updated_at,
        line_items=[
            LineItemOut(
                id=i.id,
                item_type=i.item_type,
                product_id=i.product_id,
                sku=i.sku,
                name=i.name,
                description=i.description,
                quantity=i.quantity,
                unit_price=to_money(i.unit_price),
                discount=to_money(i.discount),
                total=to_money(i.total),
                sort_order=i.sort_order,
            )
            for i in q.line_items
        ],
    )


async def _get_customer(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer or not customer.is_active:
        raise NotFoundException("Customer not found", ErrorCode.CUSTOMER_NOT_FOUND)
    return customer


async def _get_owner(db: AsyncSession, owner_id: int) -> User:
    owner = await db.get(User, owner_id)
    if not owner or not owner.is_active:
        raise NotFoundException("Owner not found", ErrorCode.OWNER_NOT_FOUND)
    return owner


def _pricing_error(e: PricingError) -> ValidationException:
    return ValidationException(
        e.message,
        ErrorCode.INVALID_PRICING,
        {"field": e.field} if e.field else None,
    )


def _stamp_status(q: Quote, target: QuoteStatus) -> None:
    q.status = target
    stamp = STATUS_TIMESTAMPS.get(target)
    if stamp and getattr(q, stamp) is None:
        setattr(q, stamp, utcnow())


async def _track(tracker, q: Quote, code: ActivityCode, actor, **context) -> None:
    if tracker is None:
        return
    await tracker.track(
        entity_type=ENTITY,
        entity_id=q.id,
        code=code,
        actor_id=getattr(actor, "id", None),
        actor_label=actor.label,
        target_name=q.quote_number,
        **context,
    )


# =====================================================
# CREATE
# =====================================================

async def create_quote(
    db: AsyncSession,
    payload: QuoteCreate,
    actor: InternalActor,
    tracker=None,
) -> QuoteOut:
    # -------------------------
    # Validate everything before writing
    # -------------------------
    fields_set = payload.model_fields_set
    ensure_single_customer_source(payload, fields_set)

    customer = None
    if payload.customer_id is not None:
        customer = await _get_customer(db, payload.customer_id)
    elif not (payload.customer_name and payload.customer_name.strip()) or not payload.customer_email:
        raise ValidationException(
            "A linked customer or a customer name and email is required",
            ErrorCode.QUOTE_CUSTOMER_REQUIRED,
        )

    owner = await _get_owner(db, payload.owner_id) if payload.owner_id is not None else None

    if not payload.items:
        raise ValidationException("Quote must contain at least one line item", ErrorCode.VALIDATION_ERROR)

    try:
        line_items = build_line_items(payload.items)
        breakdown = calculate_pricing(
            subtotal_of(line_items),
            payload.discount_value,
            payload.discount_type,
            payload.tax_rate,
            payload.shipping,
        )
    except PricingError as e:
        raise _pricing_error(e)

    # -------------------------
    # Insert, retrying on quote number collisions
    # -------------------------
    for attempt in range(1, QUOTE_NUMBER_MAX_ATTEMPTS + 1):
        quote_number = await generate_quote_number(db)
        now = utcnow()

        q = Quote(
            quote_number=quote_number,
            status=QuoteStatus.PENDING,
            version=1,
            last_modified_at=now,
            artwork_version=1,
            created_by_id=actor.id,
            updated_by_id=actor.id,
        )
        q.customer = None
        q.owner = None
        q.line_items = []
        apply_fields(
            q,
            payload,
            fields_set | {"artwork_required"},
            customer=customer,
            owner=owner,
        )
        replace_line_items(q, build_line_items(payload.items))
        apply_pricing(q, breakdown)

        created = audit.created_event(snapshot_quote(q))

        db.add(q)
        try:
            await db.flush()
            audit.record_audit_entries(db, q, [created], actor)
            await db.commit()
            break
        except IntegrityError:
            await db.rollback()
            logger.warning(
                "Quote number collision, retrying",
                extra={"quote_number": quote_number, "attempt": attempt},
            )
            # rollback expired everything loaded so far
            if customer is not None:
                customer = await _get_customer(db, payload.customer_id)
            if owner is not None:
                owner = await _get_owner(db, payload.owner_id)
    else:
        raise ConflictException(
            "Could not allocate a quote number, please retry",
            ErrorCode.QUOTE_NUMBER_EXHAUSTED,
        )

    q = await load_quote(db, q.id, refresh=True)

    logger.info("Quote created", extra={"quote_id": q.id, "quote_number": q.quote_number})

    await _track(tracker, q, ActivityCode.CREATE_QUOTE, actor, new_value={"status": q.status.value})
    return _map_quote(q)


# =====================================================
# READ
# =====================================================

async def get_quote(
    db: AsyncSession,
    quote_id: int,
) -> QuoteOut:
    q = await load_quote(db, quote_id)
    return _map_quote(q)


SORT_MAP = {
    "created_at": Quote.created_at,
    "updated_at": Quote.updated_at,
    "quote_number": Quote.quote_number,
    "total": Quote.total,
    "valid_until": Quote.valid_until,
    "status": Quote.status,
}


async def list_quotes(
    db: AsyncSession,
    status: QuoteStatus | None = None,
    customer_id: int | None = None,
    owner_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    order: str = "desc",
) -> QuoteListData:
    conditions = []
    if status:
        conditions.append(Quote.status == status)
    if customer_id:
        conditions.append(Quote.customer_id == customer_id)
    if owner_id:
        conditions.append(Quote.owner_id == owner_id)
    if search and search.strip():
        term = f"%{search.strip()}%"
        conditions.append(
            or_(
                Quote.quote_number.ilike(term),
                Quote.title.ilike(term),
                Quote.customer_name.ilike(term),
                Quote.customer_email.ilike(term),
                Quote.customer_company.ilike(term),
                Customer.contact_name.ilike(term),
                Customer.company_name.ilike(term),
                Customer.email.ilike(term),
            )
        )

    items_count = (
        select(func.count(QuoteLineItem.id))
        .where(QuoteLineItem.quote_id == Quote.id)
        .correlate(Quote)
        .scalar_subquery()
    )

    base_query = (
        select(Quote, items_count.label("items_count"))
        .outerjoin(Customer, Customer.id == Quote.customer_id)
        .where(*conditions)
    )

    total = await db.scalar(
        select(func.count(Quote.id))
        .select_from(Quote)
        .outerjoin(Customer, Customer.id == Quote.customer_id)
        .where(*conditions)
    )

    if sort_by not in SORT_MAP:
        raise ValidationException("Invalid sort field", ErrorCode.VALIDATION_ERROR)
    sort_col = SORT_MAP[sort_by]
    order_fn = asc if order == "asc" else desc

    result = await db.execute(
        base_query
        .order_by(order_fn(sort_col), order_fn(Quote.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    items = []
    for q, count in result.all():
        linked = q.customer if q.customer_id is not None else None
        items.append(
            QuoteListItem(
                id=q.id,
                quote_number=q.quote_number,
                title=q.title,
                status=q.status,
                customer_name=linked.contact_name if linked else q.customer_name,
                customer_email=resolve_customer_email(q),
                customer_company=linked.company_name if linked else q.customer_company,
                owner_name=q.owner.name if q.owner else None,
                items_count=count or 0,
                total=to_money(q.total),
                valid_until=q.valid_until,
                created_at=q.created_at,
            )
        )

    return QuoteListData(total=total or 0, items=items)


# =====================================================
# UPDATE
# =====================================================

async def update_quote(
    db: AsyncSession,
    quote_id: int,
    payload: QuoteUpdate,
    actor: InternalActor,
    tracker=None,
) -> QuoteOut:
    fields_set = set(payload.model_fields_set) - {"version"}

    q = await load_quote(db, quote_id, for_update=True)
    check_version(q, payload.version)

    # -------------------------
    # Validation (no writes until all of it passes)
    # -------------------------
    ensure_single_customer_source(payload, fields_set)

    customer = None
    if "customer_id" in fields_set and payload.customer_id is not None:
        customer = await _get_customer(db, payload.customer_id)

    owner = None
    if "owner_id" in fields_set and payload.owner_id is not None:
        owner = await _get_owner(db, payload.owner_id)

    current_status = QuoteStatus(q.status)
    target_status = None
    if "status" in fields_set and payload.status is not None and payload.status != current_status:
        target_status = QuoteStatus(payload.status)
        ensure_transition(current_status, target_status)
        ensure_role_for_target(actor, target_status)

    new_items = None
    if "items" in fields_set and payload.items is not None:
        if not payload.items:
            raise ValidationException("Quote must contain at least one line item", ErrorCode.VALIDATION_ERROR)
        new_items = payload.items

    reprice = new_items is not None or any(f in fields_set for f in PRICING_FIELDS)
    breakdown = None
    line_items = None
    if reprice:
        def pick(field, default):
            if field not in fields_set:
                return getattr(q, field)
            value = getattr(payload, field)
            return default if value is None else value

        try:
            line_items = build_line_items(new_items) if new_items is not None else None
            breakdown = calculate_pricing(
                subtotal_of(line_items if line_items is not None else q.line_items),
                pick("discount_value", 0),
                pick("discount_type", DiscountType.FIXED),
                pick("tax_rate", 0),
                pick("shipping", 0),
            )
        except PricingError as e:
            raise _pricing_error(e)

    # -------------------------
    # Apply
    # -------------------------
    before = snapshot_quote(q)

    apply_fields(q, payload, fields_set, customer=customer, owner=owner)
    if line_items is not None:
        replace_line_items(q, line_items)
    if breakdown is not None:
        apply_pricing(q, breakdown)
    if target_status is not None:
        _stamp_status(q, target_status)

    after = snapshot_quote(q)
    drafts = audit.diff_or_warn(q, before, after, actor)

    if not drafts and after == before:
        # nothing stored changed; drop the no-op line item swap too
        await db.rollback()
        return _map_quote(await load_quote(db, quote_id, refresh=True))

    touch(q, actor)
    audit.record_audit_entries(db, q, drafts, actor)

    await db.flush()
    result = _map_quote(q)
    await db.commit()

    logger.info(
        "Quote updated",
        extra={"quote_id": q.id, "changes": [d.action.value for d in drafts]},
    )

    if target_status is not None:
        await _track(
            tracker, q, ActivityCode.CHANGE_QUOTE_STATUS, actor,
            old_value={"status": current_status.value},
            new_value={"status": target_status.value},
            old_status=current_status.value,
            new_status=target_status.value,
        )
    else:
        await _track(
            tracker, q, ActivityCode.UPDATE_QUOTE, actor,
            changes=", ".join(d.action.value.lower() for d in drafts) or "line item details",
        )

    return result


# =====================================================
# SEND
# =====================================================

async def send_quote(
    db: AsyncSession,
    quote_id: int,
    actor: InternalActor,
    site: SiteSettings,
    notifier,
    tracker=None,
) -> QuoteSendResult:
    q = await load_quote(db, quote_id, for_update=True)

    recipient = resolve_customer_email(q)
    if not recipient:
        raise ConflictException("Quote has no customer email", ErrorCode.NO_CUSTOMER_EMAIL)

    previous_status = QuoteStatus(q.status)
    ensure_transition(previous_status, QuoteStatus.SENT)

    # token and last-modified persist even when delivery fails
    if not q.access_token:
        q.access_token = generate_token()
    touch(q, actor)
    await db.commit()

    result = await notifier.send_quote(q, recipient)
    quote_url = site.quote_link(q.access_token)

    if not result.success:
        logger.warning(
            "Quote email not delivered",
            extra={"quote_id": q.id, "token": mask_token(q.access_token), "error": result.error},
        )
        return QuoteSendResult(
            quote=_map_quote(q),
            email_sent=False,
            message=(
                "Quote saved, but the email could not be delivered"
                + (f": {result.error}" if result.error else "")
            ),
            quote_url=quote_url,
        )

    # the row was unlocked while the email went out; judge the move
    # against what is stored now
    q = await load_quote(db, quote_id, for_update=True)
    current_status = QuoteStatus(q.status)
    advance = can_transition(current_status, QuoteStatus.SENT)

    drafts = [audit.quote_sent_event(recipient)]
    if advance:
        q.status = QuoteStatus.SENT
        q.sent_at = utcnow()
        if current_status != QuoteStatus.SENT:
            drafts.append(audit.status_change_event(current_status, QuoteStatus.SENT, actor))
    else:
        logger.warning(
            "Quote status changed while the email was sent; status left as is",
            extra={"quote_id": q.id, "expected": previous_status.value, "status": current_status.value},
        )

    touch(q, actor)
    audit.record_audit_entries(db, q, drafts, actor)
    await db.commit()

    logger.info("Quote sent", extra={"quote_id": q.id, "token": mask_token(q.access_token)})

    if advance and current_status != QuoteStatus.SENT:
        await _track(
            tracker, q, ActivityCode.CHANGE_QUOTE_STATUS, actor,
            old_value={"status": current_status.value},
            new_value={"status": QuoteStatus.SENT.value},
            old_status=current_status.value,
            new_status=QuoteStatus.SENT.value,
        )

    if advance:
        message = f"Quote sent to {recipient}"
    else:
        message = (
            f"Quote emailed to {recipient}, but it was moved to "
            f"{current_status.value} meanwhile and its status was not changed"
        )

    return QuoteSendResult(
        quote=_map_quote(q),
        email_sent=True,
        message=message,
        quote_url=quote_url,
    )


# =====================================================
# DELETE
# =====================================================

async def delete_quote(
    db: AsyncSession,
    quote_id: int,
    actor: InternalActor,
    tracker=None,
) -> QuoteDeletedOut:
    if not actor.has_role(UserRole.SUPER_ADMIN):
        raise ForbiddenException("Only SUPER_ADMIN can delete quotes")

    q = await load_quote(db, quote_id, for_update=True)
    result = QuoteDeletedOut(id=q.id, quote_number=q.quote_number)

    # history outlives the quote; quote_number stays on each row
    await db.execute(
        update(QuoteAuditLog)
        .where(QuoteAuditLog.quote_id == q.id)
        .values(quote_id=None)
    )
    await db.execute(delete(ArtworkVersion).where(ArtworkVersion.quote_id == q.id))
    await db.delete(q)
    await db.commit()

    logger.info("Quote deleted", extra={"quote_id": result.id, "quote_number": result.quote_number})

    await _track(tracker, q, ActivityCode.DELETE_QUOTE, actor)
    return result


# =====================================================
# PRINT
# =====================================================

async def print_quote(
    db: AsyncSession,
    quote_id: int,
    site: SiteSettings,
) -> tuple[str, bytes]:
    q = await load_quote(db, quote_id)
    return f"{q.quote_number}.pdf", generate_quote_pdf(q, site, today=date.today())
