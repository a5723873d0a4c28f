# app/routers/support/activity_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.user_role import UserRole
from app.schemas.support.activity_schemas import ActivityFilters, ActivityListData
from app.services.support.activity_service import list_activities
from app.utils.check_roles import require_role
from app.utils.response import success_response, APIResponse
from app.utils.logger import get_logger

router = APIRouter(prefix="/activities", tags=["Activities"])
logger = get_logger(__name__)


@router.get("", response_model=APIResponse[ActivityListData])
async def list_activities_api(
    filters: ActivityFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.ADMIN)),
):
    logger.info(
        "List activities requested",
        extra=filters.model_dump(exclude_none=True),
    )

    result = await list_activities(db=db, filters=filters)

    return success_response(
        "Activities fetched successfully",
        result,
    )
