from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional
from decimal import Decimal
from datetime import datetime, date

from app.models.enums.quote_status import QuoteStatus
from app.models.enums.discount_type import DiscountType

ResponseState = Literal["pending", "approved", "declined"]


# =====================================================
# CUSTOMER-FACING VIEWS (no internal notes, owner or catalog refs)
# =====================================================

class PublicLineItemOut(BaseModel):
    name: str
    description: Optional[str]
    quantity: int
    unit_price: Decimal
    discount: Decimal
    total: Decimal


class PublicQuoteOut(BaseModel):
    quote_number: str
    title: Optional[str]
    notes: Optional[str]
    status: QuoteStatus

    customer_name: Optional[str]
    customer_company: Optional[str]

    valid_until: Optional[date]
    requested_delivery: Optional[date]
    sent_at: Optional[datetime]
    approved_at: Optional[datetime]
    declined_at: Optional[datetime]

    subtotal: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    line_items: List[PublicLineItemOut]

    response_state: ResponseState
    is_expired: bool


class PublicArtworkOut(BaseModel):
    quote_number: str
    title: Optional[str]
    customer_name: Optional[str]

    artwork_url: str
    artwork_file_name: Optional[str]
    artwork_version: int
    sent_at: Optional[datetime]
    approved_at: Optional[datetime]
    declined_at: Optional[datetime]
    notes: Optional[str]

    response_state: ResponseState
    quote_status: QuoteStatus
    quote_state: ResponseState
    can_approve_quote: bool


# =====================================================
# CUSTOMER ACTIONS
# =====================================================

class QuoteResponseIn(BaseModel):
    action: Literal["approve", "decline"]


class ArtworkResponseIn(BaseModel):
    action: Literal["approve", "decline"]
    notes: Optional[str] = Field(None, max_length=2000)
    target: Literal["artwork", "quote"] = Field("artwork", alias="type")

    model_config = ConfigDict(populate_by_name=True)


class PublicResponseOut(BaseModel):
    status: QuoteStatus
    response_state: ResponseState
    already_responded: bool = False
    message: str
    quote_state: Optional[ResponseState] = None
    can_approve_quote: bool = False
