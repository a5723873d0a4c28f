from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.site import SiteSettings, get_site_settings
from app.models.enums.quote_status import QuoteStatus
from app.models.enums.user_role import UserRole
from app.utils.check_roles import require_role
from app.utils.response import success_response, APIResponse

from app.schemas.quotes.quote_schemas import (
    QuoteCreate,
    QuoteUpdate,
    QuoteOut,
    QuoteListData,
    QuoteSendResult,
    QuoteDeletedOut,
)
from app.schemas.quotes.audit_schemas import QuoteAuditListData

from app.services.quotes.quote_service import (
    create_quote,
    get_quote,
    list_quotes,
    update_quote,
    send_quote,
    delete_quote,
    print_quote,
)
from app.services.quotes.audit_recorder import list_audit_entries
from app.services.notifications.quote_notifier import QuoteNotifier, get_quote_notifier
from app.services.support.activity_service import ActivityTracker, get_activity_tracker

router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"],
)


@router.post(
    "",
    response_model=APIResponse[QuoteOut],
    status_code=201,
)
async def create_quote_api(
    payload: QuoteCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.ADMIN)),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    quote = await create_quote(db, payload, user, tracker)
    return success_response(
        "Quote created successfully",
        quote,
    )


@router.get(
    "",
    response_model=APIResponse[QuoteListData],
)
async def list_quotes_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.EDITOR)),
    status: QuoteStatus | None = Query(None, description="Filter by status"),
    customer_id: int | None = Query(None, description="Filter by linked customer"),
    owner_id: int | None = Query(None, description="Filter by owner"),
    search: str | None = Query(None, description="Quote number, title or customer"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    data = await list_quotes(
        db=db,
        status=status,
        customer_id=customer_id,
        owner_id=owner_id,
        search=search,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response(
        "Quotes retrieved successfully",
        data,
    )


@router.get(
    "/{quote_id}",
    response_model=APIResponse[QuoteOut],
)
async def get_quote_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.EDITOR)),
):
    quote = await get_quote(db, quote_id)
    return success_response(
        "Quote retrieved successfully",
        quote,
    )


@router.patch(
    "/{quote_id}",
    response_model=APIResponse[QuoteOut],
)
async def update_quote_api(
    quote_id: int,
    payload: QuoteUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.ADMIN)),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    quote = await update_quote(
        db=db,
        quote_id=quote_id,
        payload=payload,
        actor=user,
        tracker=tracker,
    )
    return success_response(
        "Quote updated successfully",
        quote,
    )


@router.post(
    "/{quote_id}/send",
    response_model=APIResponse[QuoteSendResult],
)
async def send_quote_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.ADMIN)),
    site: SiteSettings = Depends(get_site_settings),
    notifier: QuoteNotifier = Depends(get_quote_notifier),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    result = await send_quote(
        db=db,
        quote_id=quote_id,
        actor=user,
        site=site,
        notifier=notifier,
        tracker=tracker,
    )
    return success_response(result.message, result)


@router.get("/{quote_id}/print")
async def print_quote_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.EDITOR)),
    site: SiteSettings = Depends(get_site_settings),
):
    file_name, pdf = await print_quote(db, quote_id, site)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{file_name}"'},
    )


@router.get(
    "/{quote_id}/audit",
    response_model=APIResponse[QuoteAuditListData],
)
async def list_quote_audit_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.EDITOR)),
):
    data = await list_audit_entries(db, quote_id)
    return success_response(
        "Quote history retrieved successfully",
        data,
    )


@router.delete(
    "/{quote_id}",
    response_model=APIResponse[QuoteDeletedOut],
)
async def delete_quote_api(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(UserRole.SUPER_ADMIN)),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    result = await delete_quote(db, quote_id, user, tracker)
    return success_response(
        "Quote deleted successfully",
        result,
    )
