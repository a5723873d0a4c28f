from enum import Enum


class ActivityCode(str, Enum):
    # ---------------- QUOTES ----------------
    CREATE_QUOTE = "CREATE_QUOTE"
    UPDATE_QUOTE = "UPDATE_QUOTE"
    CHANGE_QUOTE_STATUS = "CHANGE_QUOTE_STATUS"
    DELETE_QUOTE = "DELETE_QUOTE"


class ActivityType(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    DELETED = "DELETED"


ACTIVITY_TYPES = {
    ActivityCode.CREATE_QUOTE: ActivityType.CREATED,
    ActivityCode.UPDATE_QUOTE: ActivityType.UPDATED,
    ActivityCode.CHANGE_QUOTE_STATUS: ActivityType.STATUS_CHANGED,
    ActivityCode.DELETE_QUOTE: ActivityType.DELETED,
}
