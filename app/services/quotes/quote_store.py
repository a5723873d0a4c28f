# app/services/quotes/quote_store.py
"""
Persistence helpers for the Quote aggregate (quote row + ordered line items).

Nothing in here commits. Callers own the transaction so a mutation, its line
items and its audit entries land together or not at all.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.quotes.quote_models import Quote, QuoteLineItem
from app.models.enums.quote_status import QuoteStatus
from app.models.enums.discount_type import DiscountType
from app.models.enums.line_item_type import LineItemType
from app.models.base.mixins import utcnow
from app.core.exceptions import NotFoundException, ConflictException
from app.constants.error_codes import ErrorCode
from app.services.quotes.pricing import PricingBreakdown, price_line
from app.services.quotes.actors import InternalActor
from app.utils.logger import get_logger, mask_token

logger = get_logger(__name__)

CUSTOMER_SNAPSHOT_FIELDS = (
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_company",
)

GENERAL_FIELDS = (
    "title",
    "notes",
    "internal_notes",
    "valid_until",
    "requested_delivery",
    "artwork_required",
)

PRICING_FIELDS = (
    "discount_value",
    "discount_type",
    "tax_rate",
    "shipping",
)


# =====================================================
# CUSTOMER REFERENCE
# =====================================================

@dataclass(frozen=True)
class LinkedCustomer:
    id: int
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class CustomerSnapshot:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None


CustomerRef = Union[LinkedCustomer, CustomerSnapshot]


def customer_ref(quote: Quote) -> CustomerRef:
    if quote.customer_id is not None:
        customer = quote.customer
        return LinkedCustomer(
            id=quote.customer_id,
            name=customer.contact_name if customer else None,
            email=customer.email if customer else None,
        )
    return CustomerSnapshot(
        name=quote.customer_name,
        email=quote.customer_email,
        phone=quote.customer_phone,
        company=quote.customer_company,
    )


def resolve_customer_email(quote: Quote) -> Optional[str]:
    if quote.customer_id is not None and quote.customer is not None:
        email = quote.customer.email
    else:
        email = quote.customer_email
    return email.strip() if email and email.strip() else None


def customer_display_name(quote: Quote) -> Optional[str]:
    if quote.customer_id is not None and quote.customer is not None:
        return quote.customer.company_name or quote.customer.contact_name
    return quote.customer_company or quote.customer_name or quote.customer_email


# =====================================================
# SNAPSHOT (input to the audit diff)
# =====================================================

@dataclass(frozen=True)
class QuoteSnapshot:
    quote_number: str
    status: QuoteStatus

    customer_id: Optional[int]
    customer_name: Optional[str]
    customer_email: Optional[str]
    customer_phone: Optional[str]
    customer_company: Optional[str]

    owner_id: Optional[int]
    owner_name: Optional[str]

    line_items: tuple

    discount_value: Decimal
    discount_type: DiscountType
    tax_rate: Decimal
    shipping: Decimal
    total: Decimal

    title: Optional[str]
    notes: Optional[str]
    internal_notes: Optional[str]
    valid_until: Optional[date]
    requested_delivery: Optional[date]
    artwork_required: bool

    # everything stored per line, including fields the audit diff ignores
    item_rows: tuple = ()
    subtotal: Decimal = Decimal("0")


def _as_day(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def _ordered_items(quote: Quote) -> list[QuoteLineItem]:
    return sorted(quote.line_items, key=lambda i: i.sort_order)


def _item_row(item: QuoteLineItem) -> tuple:
    return (
        LineItemType(item.item_type) if item.item_type is not None else None,
        item.product_id,
        item.sku,
        item.name,
        item.description,
        item.quantity,
        Decimal(item.unit_price),
        Decimal(item.discount or 0),
    )


def snapshot_quote(quote: Quote) -> QuoteSnapshot:
    ref = customer_ref(quote)

    return QuoteSnapshot(
        quote_number=quote.quote_number,
        status=QuoteStatus(quote.status),
        customer_id=quote.customer_id,
        customer_name=ref.name,
        customer_email=ref.email,
        customer_phone=quote.customer_phone,
        customer_company=quote.customer_company,
        owner_id=quote.owner_id,
        owner_name=quote.owner.name if quote.owner is not None else None,
        line_items=tuple(
            (item.name, item.quantity, Decimal(item.unit_price))
            for item in _ordered_items(quote)
        ),
        discount_value=Decimal(quote.discount_value or 0),
        discount_type=DiscountType(quote.discount_type or DiscountType.FIXED),
        tax_rate=Decimal(quote.tax_rate or 0),
        shipping=Decimal(quote.shipping or 0),
        total=Decimal(quote.total or 0),
        title=quote.title,
        notes=quote.notes,
        internal_notes=quote.internal_notes,
        valid_until=_as_day(quote.valid_until),
        requested_delivery=_as_day(quote.requested_delivery),
        artwork_required=bool(quote.artwork_required),
        item_rows=tuple(_item_row(item) for item in _ordered_items(quote)),
        subtotal=Decimal(quote.subtotal or 0),
    )


# =====================================================
# LOADERS
# =====================================================

async def _load_one(
    db: AsyncSession,
    *criteria,
    for_update: bool = False,
    refresh: bool = False,
) -> Optional[Quote]:
    query = select(Quote).where(*criteria)
    if for_update:
        query = query.with_for_update()
    if for_update or refresh:
        # overwrite whatever the identity map already holds for this row
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def load_quote(
    db: AsyncSession,
    quote_id: int,
    for_update: bool = False,
    refresh: bool = False,
) -> Quote:
    q = await _load_one(db, Quote.id == quote_id, for_update=for_update, refresh=refresh)
    if not q:
        raise NotFoundException("Quote not found", ErrorCode.QUOTE_NOT_FOUND)
    return q


async def load_quote_by_access_token(
    db: AsyncSession,
    token: str,
    for_update: bool = False,
) -> Quote:
    q = None
    if token:
        q = await _load_one(db, Quote.access_token == token, for_update=for_update)
    if not q:
        logger.info("Unknown quote token", extra={"token": mask_token(token)})
        raise NotFoundException("Quote not found", ErrorCode.QUOTE_NOT_FOUND)
    return q


async def load_quote_by_artwork_token(
    db: AsyncSession,
    token: str,
    for_update: bool = False,
) -> Quote:
    q = None
    if token:
        q = await _load_one(db, Quote.artwork_token == token, for_update=for_update)
    if not q:
        logger.info("Unknown artwork token", extra={"token": mask_token(token)})
        raise NotFoundException("Artwork not found", ErrorCode.NO_ARTWORK)
    return q


# =====================================================
# QUOTE NUMBER
# =====================================================

async def generate_quote_number(db: AsyncSession, year: int | None = None) -> str:
    """Next ``Q<year>-NNNN`` number. Uniqueness is enforced by the column."""
    year = year or utcnow().year
    prefix = f"Q{year}-"

    last = await db.scalar(
        select(Quote.quote_number)
        .where(Quote.quote_number.like(f"{prefix}%"))
        .order_by(desc(func.length(Quote.quote_number)), desc(Quote.quote_number))
        .limit(1)
    )

    seq = 0
    if last:
        try:
            seq = int(last[len(prefix):])
        except ValueError:
            logger.warning("Unparseable quote number", extra={"quote_number": last})

    return f"{prefix}{seq + 1:04d}"


# =====================================================
# LINE ITEMS
# =====================================================

def build_line_items(items) -> list[QuoteLineItem]:
    built = []
    for position, item in enumerate(items):
        priced = price_line(item.unit_price, item.quantity, item.discount)
        built.append(
            QuoteLineItem(
                item_type=item.item_type,
                product_id=item.product_id,
                sku=item.sku or None,
                name=item.name,
                description=item.description or None,
                quantity=priced.quantity,
                unit_price=priced.unit_price,
                discount=priced.discount,
                total=priced.total,
                sort_order=position,
            )
        )
    return built


def replace_line_items(quote: Quote, items: list[QuoteLineItem]) -> None:
    # assigning a fresh collection orphans every old row; delete-orphan
    # removes them in the same flush that inserts the new set
    quote.line_items = items


# =====================================================
# FIELD / PRICING APPLICATION
# =====================================================

def _cleared(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def ensure_single_customer_source(payload, fields_set: set[str]) -> None:
    links = "customer_id" in fields_set and payload.customer_id is not None
    snapshot = any(
        f in fields_set and _cleared(getattr(payload, f)) is not None
        for f in CUSTOMER_SNAPSHOT_FIELDS
    )
    if links and snapshot:
        raise ConflictException(
            "Provide either a linked customer or customer details, not both",
            ErrorCode.QUOTE_CUSTOMER_CONFLICT,
        )


def apply_fields(
    quote: Quote,
    payload,
    fields_set: set[str] | None = None,
    *,
    customer=None,
    owner=None,
) -> list[str]:
    """
    Apply header fields present in ``fields_set`` (defaults to the payload's
    ``model_fields_set``). ``customer``/``owner`` are the already-resolved rows
    for ``customer_id``/``owner_id``. Returns the names of the fields written.
    """
    if fields_set is None:
        fields_set = payload.model_fields_set

    ensure_single_customer_source(payload, fields_set)
    written: list[str] = []

    # -------------------------
    # Customer
    # -------------------------
    if "customer_id" in fields_set and payload.customer_id is not None:
        quote.customer = customer
        quote.customer_id = payload.customer_id
        for f in CUSTOMER_SNAPSHOT_FIELDS:
            setattr(quote, f, None)
        written.append("customer_id")
    else:
        snapshot_given = [f for f in CUSTOMER_SNAPSHOT_FIELDS if f in fields_set]
        if "customer_id" in fields_set or any(
            _cleared(getattr(payload, f)) is not None for f in snapshot_given
        ):
            if quote.customer_id is not None:
                quote.customer = None
                quote.customer_id = None
                written.append("customer_id")
        for f in snapshot_given:
            value = _cleared(getattr(payload, f))
            setattr(quote, f, str(value) if value is not None else None)
            written.append(f)

    # -------------------------
    # Owner
    # -------------------------
    if "owner_id" in fields_set:
        quote.owner = owner if payload.owner_id is not None else None
        quote.owner_id = payload.owner_id
        written.append("owner_id")

    # -------------------------
    # General
    # -------------------------
    for f in GENERAL_FIELDS:
        if f not in fields_set:
            continue
        value = _cleared(getattr(payload, f))
        if f == "artwork_required":
            value = bool(value)
        setattr(quote, f, value)
        written.append(f)

    return written


def apply_pricing(quote: Quote, breakdown: PricingBreakdown) -> None:
    """The computed pricing fields are only ever written together."""
    quote.subtotal = breakdown.subtotal
    quote.discount_value = breakdown.discount_value
    quote.discount_type = breakdown.discount_type
    quote.discount = breakdown.discount
    quote.tax_rate = breakdown.tax_rate
    quote.tax = breakdown.tax
    quote.shipping = breakdown.shipping
    quote.total = breakdown.total


# =====================================================
# CONCURRENCY
# =====================================================

def check_version(quote: Quote, expected: int | None) -> None:
    if expected is not None and quote.version != expected:
        raise ConflictException(
            "Quote was modified by someone else. Reload and try again.",
            ErrorCode.QUOTE_VERSION_CONFLICT,
            {"expected": expected, "current": quote.version},
        )


def touch(quote: Quote, actor=None) -> None:
    quote.version = (quote.version or 0) + 1
    quote.last_modified_at = utcnow()
    if isinstance(actor, InternalActor):
        quote.updated_by_id = actor.id
