# app/services/support/activity_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, asc

from app.core.db import AsyncSessionLocal
from app.models.support.activity_models import EntityActivity
from app.schemas.support.activity_schemas import (
    EntityActivityOut,
    ActivityFilters,
    ActivityListData,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode, ACTIVITY_TYPES
from app.constants.activity_templates import render_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SORT_FIELDS = {
    "created_at": EntityActivity.created_at,
    "entity_type": EntityActivity.entity_type,
    "activity_type": EntityActivity.activity_type,
}


class ActivityTracker:
    """
    Analytics feed writer. Uses its own session so it runs after the
    business transaction has committed; failures are logged and dropped.
    """

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def track(
        self,
        *,
        entity_type: str,
        entity_id: int,
        code: ActivityCode,
        actor_id: int | None = None,
        old_value=None,
        new_value=None,
        **context,
    ) -> None:
        try:
            message = render_activity(code, **context)
            async with self.session_factory() as session:
                session.add(
                    EntityActivity(
                        entity_type=entity_type,
                        entity_id=entity_id,
                        activity_type=ACTIVITY_TYPES[code].value,
                        actor_id=actor_id,
                        message=message,
                        old_value=old_value,
                        new_value=new_value,
                    )
                )
                await session.commit()
        except Exception:
            logger.warning(
                "Activity tracking failed",
                extra={"entity_type": entity_type, "entity_id": entity_id, "code": code},
                exc_info=True,
            )


def get_activity_tracker() -> ActivityTracker:
    return ActivityTracker(AsyncSessionLocal)


async def list_activities(
    *,
    db: AsyncSession,
    filters: ActivityFilters,
) -> ActivityListData:
    query = select(EntityActivity)
    count_query = select(func.count(EntityActivity.id))

    # -------------------------
    # Filters
    # -------------------------
    conditions = []
    if filters.entity_type:
        conditions.append(EntityActivity.entity_type == filters.entity_type)
    if filters.entity_id:
        conditions.append(EntityActivity.entity_id == filters.entity_id)
    if filters.activity_type:
        conditions.append(EntityActivity.activity_type == filters.activity_type)
    if filters.actor_id:
        conditions.append(EntityActivity.actor_id == filters.actor_id)

    if conditions:
        query = query.where(*conditions)
        count_query = count_query.where(*conditions)

    # -------------------------
    # Sorting (safe)
    # -------------------------
    sort_column = ALLOWED_SORT_FIELDS.get(filters.sort_by)
    if sort_column is None:
        raise AppException(
            400,
            "Invalid sort field",
            ErrorCode.VALIDATION_ERROR,
        )

    order_fn = desc if filters.sort_order == "desc" else asc
    query = query.order_by(order_fn(sort_column), order_fn(EntityActivity.id))

    # -------------------------
    # Pagination
    # -------------------------
    offset = (filters.page - 1) * filters.page_size
    query = query.limit(filters.page_size).offset(offset)

    total = await db.scalar(count_query)
    result = await db.execute(query)

    return ActivityListData(
        total=total or 0,
        items=[EntityActivityOut.model_validate(a) for a in result.scalars().all()],
    )
