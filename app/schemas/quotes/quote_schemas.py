from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from decimal import Decimal
from datetime import datetime, date

from app.models.enums.quote_status import QuoteStatus
from app.models.enums.discount_type import DiscountType
from app.models.enums.line_item_type import LineItemType
from app.models.enums.artwork_status import ArtworkStatus

# =====================================================
# LINE ITEM PAYLOADS
# =====================================================

class LineItemIn(BaseModel):
    item_type: LineItemType = LineItemType.PRODUCT
    product_id: Optional[int] = None
    sku: Optional[str] = Field(None, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)


# =====================================================
# QUOTE CREATE / UPDATE
# =====================================================

class QuoteCreate(BaseModel):
    # linked customer OR snapshot, not both
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, max_length=50)
    customer_company: Optional[str] = Field(None, max_length=255)

    title: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    valid_until: Optional[date] = None
    requested_delivery: Optional[date] = None
    owner_id: Optional[int] = None
    artwork_required: bool = False

    discount_value: Decimal = Decimal("0")
    discount_type: DiscountType = DiscountType.FIXED
    tax_rate: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")

    items: List[LineItemIn] = []


class QuoteUpdate(BaseModel):
    """
    Partial update. Only fields present in the request body are applied;
    an explicit null (or empty string) clears the field.
    """

    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, max_length=50)
    customer_company: Optional[str] = Field(None, max_length=255)

    title: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    valid_until: Optional[date] = None
    requested_delivery: Optional[date] = None
    owner_id: Optional[int] = None
    artwork_required: Optional[bool] = None

    discount_value: Optional[Decimal] = None
    discount_type: Optional[DiscountType] = None
    tax_rate: Optional[Decimal] = None
    shipping: Optional[Decimal] = None

    items: Optional[List[LineItemIn]] = None
    status: Optional[QuoteStatus] = None

    version: Optional[int] = None


# =====================================================
# RESPONSES
# =====================================================

class LineItemOut(BaseModel):
    id: int
    item_type: LineItemType
    product_id: Optional[int]
    sku: Optional[str]
    name: str
    description: Optional[str]
    quantity: int
    unit_price: Decimal
    discount: Decimal
    total: Decimal
    sort_order: int


class CustomerRefOut(BaseModel):
    customer_id: Optional[int]
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    company: Optional[str]
    is_linked: bool


class OwnerOut(BaseModel):
    id: int
    name: str
    email: str


class QuoteOut(BaseModel):
    id: int
    quote_number: str
    status: QuoteStatus

    customer: CustomerRefOut
    owner: Optional[OwnerOut]

    title: Optional[str]
    notes: Optional[str]
    internal_notes: Optional[str]
    valid_until: Optional[date]
    requested_delivery: Optional[date]
    artwork_required: bool

    subtotal: Decimal
    discount_value: Decimal
    discount_type: DiscountType
    discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    sent_at: Optional[datetime]
    approved_at: Optional[datetime]
    declined_at: Optional[datetime]
    last_modified_at: Optional[datetime]

    artwork_url: Optional[str]
    artwork_file_name: Optional[str]
    artwork_version: int
    artwork_status: Optional[ArtworkStatus]

    version: int
    created_by_id: Optional[int]
    updated_by_id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]

    line_items: List[LineItemOut]


class QuoteListItem(BaseModel):
    id: int
    quote_number: str
    title: Optional[str]
    status: QuoteStatus
    customer_name: Optional[str]
    customer_email: Optional[str]
    customer_company: Optional[str]
    owner_name: Optional[str]
    items_count: int
    total: Decimal
    valid_until: Optional[date]
    created_at: datetime


class QuoteListData(BaseModel):
    total: int
    items: List[QuoteListItem]


class QuoteSendResult(BaseModel):
    quote: QuoteOut
    email_sent: bool
    message: str
    quote_url: str


class QuoteDeletedOut(BaseModel):
    id: int
    quote_number: str
