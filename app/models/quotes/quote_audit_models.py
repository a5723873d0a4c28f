from sqlalchemy import Column, Integer, String, ForeignKey, Enum, Index, JSON, Text

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.audit_action import QuoteAuditAction, AuditActorType


class QuoteAuditLog(Base, TimestampMixin):
    """Immutable quote history. APPEND-ONLY. Outlives the quote it describes."""

    __tablename__ = "quote_audit_logs"

    id = Column(Integer, primary_key=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True, index=True)
    quote_number = Column(String(20), nullable=False, index=True)

    action = Column(Enum(QuoteAuditAction), nullable=False, index=True)
    description = Column(Text, nullable=False)

    actor_type = Column(Enum(AuditActorType), nullable=False)
    actor_id = Column(Integer, nullable=True)
    actor_name = Column(String(150), nullable=True)
    actor_email = Column(String(255), nullable=True)

    previous_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    context = Column(JSON, nullable=True)

    __table_args__ = (Index("ix_quote_audit_quote_created", "quote_id", "created_at"),)

    def __repr__(self):
        return f"<QuoteAuditLog id={self.id} quote={self.quote_number} action={self.action}>"
