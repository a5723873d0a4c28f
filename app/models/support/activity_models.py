from sqlalchemy import Column, Integer, String, Index, JSON

from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class EntityActivity(Base, TimestampMixin):
    """Analytics activity feed. APPEND-ONLY. Never updated, never deleted."""

    __tablename__ = "entity_activities"

    id = Column(Integer, primary_key=True)
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False)
    activity_type = Column(String(30), nullable=False, index=True)
    actor_id = Column(Integer, nullable=True, index=True)
    message = Column(String, nullable=False)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)

    __table_args__ = (Index("ix_entity_activity_entity", "entity_type", "entity_id", "created_at"),)

    def __repr__(self):
        return f"<EntityActivity {self.entity_type}:{self.entity_id} {self.activity_type}>"
