# app/models/enums/audit_action.py
import enum


class QuoteAuditAction(str, enum.Enum):
    CREATED = "CREATED"
    STATUS_CHANGE = "STATUS_CHANGE"
    LINE_ITEMS_CHANGED = "LINE_ITEMS_CHANGED"
    CUSTOMER_CHANGED = "CUSTOMER_CHANGED"
    OWNER_CHANGED = "OWNER_CHANGED"
    PRICING_UPDATED = "PRICING_UPDATED"
    GENERAL_UPDATE = "GENERAL_UPDATE"
    QUOTE_SENT = "QUOTE_SENT"
    ARTWORK_UPLOADED = "ARTWORK_UPLOADED"
    ARTWORK_UPDATED = "ARTWORK_UPDATED"
    ARTWORK_SENT = "ARTWORK_SENT"
    ARTWORK_APPROVED = "ARTWORK_APPROVED"
    ARTWORK_DECLINED = "ARTWORK_DECLINED"
    ARTWORK_REMOVED = "ARTWORK_REMOVED"


class AuditActorType(str, enum.Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"
    SYSTEM = "SYSTEM"
