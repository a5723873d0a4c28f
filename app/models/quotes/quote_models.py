from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, ForeignKey, Numeric, Enum, Index, CheckConstraint,
    Boolean, Text, DateTime,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Date

from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.quote_status import QuoteStatus
from app.models.enums.discount_type import DiscountType
from app.models.enums.artwork_status import ArtworkStatus
from app.models.enums.line_item_type import LineItemType

# Amounts are stored unrounded; rounding happens only when displayed.
MONEY = Numeric(24, 10)


class Quote(Base, TimestampMixin, AuditMixin):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True)
    quote_number = Column(String(20), nullable=False, unique=True, index=True)

    # Customer: linked record OR free-text snapshot, never both
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_company = Column(String(255), nullable=True)

    title = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    valid_until = Column(Date, nullable=True)
    requested_delivery = Column(Date, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    artwork_required = Column(Boolean, nullable=False, default=False)

    # Pricing
    subtotal = Column(MONEY, nullable=False, default=Decimal("0"))
    discount_value = Column(MONEY, nullable=False, default=Decimal("0"))
    discount_type = Column(Enum(DiscountType), nullable=False, default=DiscountType.FIXED)
    discount = Column(MONEY, nullable=False, default=Decimal("0"))
    tax_rate = Column(Numeric(12, 6), nullable=False, default=Decimal("0"))
    tax = Column(MONEY, nullable=False, default=Decimal("0"))
    shipping = Column(MONEY, nullable=False, default=Decimal("0"))
    total = Column(MONEY, nullable=False, default=Decimal("0"))

    # Lifecycle
    status = Column(Enum(QuoteStatus), nullable=False, default=QuoteStatus.PENDING, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    last_modified_at = Column(DateTime(timezone=True), nullable=True)
    access_token = Column(String(64), nullable=True, unique=True, index=True)
    version = Column(Integer, nullable=False, default=1)

    # Artwork (current version only; superseded uploads live in artwork_versions)
    artwork_url = Column(String(1024), nullable=True)
    artwork_file_name = Column(String(255), nullable=True)
    artwork_token = Column(String(64), nullable=True, unique=True, index=True)
    artwork_version = Column(Integer, nullable=False, default=1)
    artwork_status = Column(Enum(ArtworkStatus), nullable=True)
    artwork_sent_at = Column(DateTime(timezone=True), nullable=True)
    artwork_approved_at = Column(DateTime(timezone=True), nullable=True)
    artwork_declined_at = Column(DateTime(timezone=True), nullable=True)
    artwork_notes = Column(Text, nullable=True)

    customer = relationship("Customer", lazy="selectin")
    owner = relationship("User", foreign_keys=[owner_id], lazy="selectin")
    line_items = relationship(
        "QuoteLineItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteLineItem.sort_order",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_quote_customer_status", "customer_id", "status"),
        CheckConstraint(
            "subtotal >= 0 AND discount >= 0 AND tax >= 0 AND shipping >= 0",
            name="ck_quote_amounts_non_negative",
        ),
        CheckConstraint("artwork_version >= 1", name="ck_quote_artwork_version_positive"),
    )

    def __repr__(self):
        return f"<Quote {self.quote_number} status={self.status}>"


class QuoteLineItem(Base, TimestampMixin):
    __tablename__ = "quote_line_items"

    id = Column(Integer, primary_key=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    item_type = Column(Enum(LineItemType), nullable=False, default=LineItemType.PRODUCT)
    product_id = Column(Integer, nullable=True)
    sku = Column(String(100), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)
    discount = Column(MONEY, nullable=False, default=Decimal("0"))
    total = Column(MONEY, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    quote = relationship("Quote", back_populates="line_items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_quote_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_quote_item_price_non_negative"),
        CheckConstraint("discount >= 0", name="ck_quote_item_discount_non_negative"),
        CheckConstraint("total >= 0", name="ck_quote_item_total_non_negative"),
    )

    def __repr__(self):
        return f"<QuoteLineItem id={self.id} name={self.name} qty={self.quantity}>"
