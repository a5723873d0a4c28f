from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # ---------------- REFERENCES ----------------
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    OWNER_NOT_FOUND = "OWNER_NOT_FOUND"

    # ---------------- QUOTES ----------------
    QUOTE_NOT_FOUND = "QUOTE_NOT_FOUND"
    QUOTE_VERSION_CONFLICT = "QUOTE_VERSION_CONFLICT"
    QUOTE_INVALID_TRANSITION = "QUOTE_INVALID_TRANSITION"
    QUOTE_CUSTOMER_CONFLICT = "QUOTE_CUSTOMER_CONFLICT"
    QUOTE_CUSTOMER_REQUIRED = "QUOTE_CUSTOMER_REQUIRED"
    QUOTE_NUMBER_EXHAUSTED = "QUOTE_NUMBER_EXHAUSTED"
    QUOTE_EXPIRED = "QUOTE_EXPIRED"
    QUOTE_NOT_AWAITING_RESPONSE = "QUOTE_NOT_AWAITING_RESPONSE"
    NO_CUSTOMER_EMAIL = "NO_CUSTOMER_EMAIL"
    INVALID_PRICING = "INVALID_PRICING"

    # ---------------- ARTWORK ----------------
    NO_ARTWORK = "NO_ARTWORK"
    ARTWORK_NOT_SHARED = "ARTWORK_NOT_SHARED"
    ARTWORK_NOT_APPROVED = "ARTWORK_NOT_APPROVED"
