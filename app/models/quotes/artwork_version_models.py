from sqlalchemy import Column, Integer, String, ForeignKey, Enum, Index, Text, DateTime

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.artwork_status import ArtworkStatus


class ArtworkVersion(Base, TimestampMixin):
    """Superseded artwork upload. Written once when replaced, never updated."""

    __tablename__ = "artwork_versions"

    id = Column(Integer, primary_key=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)

    url = Column(String(1024), nullable=False)
    file_name = Column(String(255), nullable=True)
    status = Column(Enum(ArtworkStatus), nullable=False)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    customer_notes = Column(Text, nullable=True)

    uploaded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_by_name = Column(String(150), nullable=True)
    uploaded_by_email = Column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_artwork_version_quote_version", "quote_id", "version"),
    )

    def __repr__(self):
        return f"<ArtworkVersion quote_id={self.quote_id} v{self.version} status={self.status}>"
