from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.site import SiteSettings, get_site_settings
from app.models.enums.user_role import UserRole
from app.utils.check_roles import require_role
from app.utils.response import success_response, APIResponse

from app.schemas.quotes.artwork_schemas import (
    ArtworkUploadIn,
    ArtworkOut,
    ArtworkSendResult,
    ArtworkVersionListData,
)

from app.services.quotes.artwork_ledger import (
    get_artwork,
    list_artwork_versions,
    upload_artwork,
    send_artwork_for_approval,
    remove_artwork,
)
from app.services.notifications.quote_notifier import QuoteNotifier, get_quote_notifier
from app.services.support.activity_service import ActivityTracker, get_activity_tracker

router = APIRouter(
    prefix="/quotes/{quote_id}/artwork",
    tags=["Quote Artwork"],
)


@router.get(
    "",
    response_model=APIResponse[ArtworkOut],
)
async def get_artwork_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.EDITOR)),
    site: SiteSettings = Depends(get_site_settings),
):
    artwork = await get_artwork(db, quote_id, site)
    return success_response(
        "Artwork retrieved successfully",
        artwork,
    )


@router.get(
    "/versions",
    response_model=APIResponse[ArtworkVersionListData],
)
async def list_artwork_versions_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.EDITOR)),
):
    data = await list_artwork_versions(db, quote_id)
    return success_response(
        "Artwork versions retrieved successfully",
        data,
    )


@router.post(
    "",
    response_model=APIResponse[ArtworkOut],
)
async def upload_artwork_api(
    quote_id: int,
    payload: ArtworkUploadIn,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.ADMIN)),
    site: SiteSettings = Depends(get_site_settings),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    artwork = await upload_artwork(db, quote_id, payload, user, site, tracker)
    return success_response(
        "Artwork uploaded successfully",
        artwork,
    )


@router.post(
    "/send",
    response_model=APIResponse[ArtworkSendResult],
)
async def send_artwork_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.ADMIN)),
    site: SiteSettings = Depends(get_site_settings),
    notifier: QuoteNotifier = Depends(get_quote_notifier),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    result = await send_artwork_for_approval(db, quote_id, user, site, notifier, tracker)
    return success_response(result.message, result)


@router.delete(
    "",
    response_model=APIResponse[ArtworkOut],
)
async def remove_artwork_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.SUPER_ADMIN)),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    artwork = await remove_artwork(db, quote_id, user, tracker)
    return success_response(
        "Artwork removed successfully",
        artwork,
    )
