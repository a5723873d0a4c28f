from pydantic import BaseModel, ConfigDict
from typing import Any, List, Optional
from datetime import datetime

from app.models.enums.audit_action import QuoteAuditAction, AuditActorType


class QuoteAuditOut(BaseModel):
    id: int
    quote_id: Optional[int]
    quote_number: str
    action: QuoteAuditAction
    description: str
    actor_type: AuditActorType
    actor_id: Optional[int]
    actor_name: Optional[str]
    actor_email: Optional[str]
    previous_value: Optional[Any]
    new_value: Optional[Any]
    context: Optional[Any]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuoteAuditListData(BaseModel):
    total: int
    items: List[QuoteAuditOut]
