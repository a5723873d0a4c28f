# app/models/enums/quote_status.py
import enum


class QuoteStatus(str, enum.Enum):
    PENDING = "PENDING"
    REVIEWING = "REVIEWING"
    SENT = "SENT"
    ARTWORK_PENDING = "ARTWORK_PENDING"
    ARTWORK_APPROVED = "ARTWORK_APPROVED"
    ARTWORK_DECLINED = "ARTWORK_DECLINED"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ARCHIVED = "ARCHIVED"


ARTWORK_STATUSES = frozenset({
    QuoteStatus.ARTWORK_PENDING,
    QuoteStatus.ARTWORK_APPROVED,
    QuoteStatus.ARTWORK_DECLINED,
})
