# app/schemas/support/activity_schemas.py

from pydantic import BaseModel, ConfigDict
from typing import Any, List, Optional
from datetime import datetime
from fastapi import Query


class ActivityFilters(BaseModel):
    entity_type: Optional[str] = Query(None)
    entity_id: Optional[int] = Query(None)
    activity_type: Optional[str] = Query(None)
    actor_id: Optional[int] = Query(None)

    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)

    sort_by: str = Query("created_at")
    sort_order: str = Query("desc")


class EntityActivityOut(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    activity_type: str
    actor_id: Optional[int]
    message: str
    old_value: Optional[Any]
    new_value: Optional[Any]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ActivityListData(BaseModel):
    total: int
    items: List[EntityActivityOut]
