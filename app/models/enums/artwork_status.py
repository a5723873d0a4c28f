import enum


class ArtworkStatus(str, enum.Enum):
    """Disposition of one artwork upload, most advanced state wins."""

    PENDING = "PENDING"
    SENT = "SENT"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
