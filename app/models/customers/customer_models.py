from sqlalchemy import Column, Integer, String, Boolean, Index

from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class Customer(Base, TimestampMixin):
    """CRM customer record. Maintained by the catalog/CRM screens; quotes only link to it."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)

    company_name = Column(String(255), nullable=True, index=True)
    contact_name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_customer_active", "is_active"),)

    def __repr__(self):
        return f"<Customer id={self.id} contact={self.contact_name} active={self.is_active}>"
