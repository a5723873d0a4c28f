# Token-gated customer pages. No bearer auth: the token is the credential.

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.response import success_response, APIResponse

from app.schemas.quotes.public_schemas import (
    PublicQuoteOut,
    PublicArtworkOut,
    QuoteResponseIn,
    ArtworkResponseIn,
    PublicResponseOut,
)

from app.services.quotes.approval_gateway import (
    get_public_quote,
    respond_to_quote,
    get_public_artwork,
    respond_to_artwork,
)
from app.services.notifications.quote_notifier import QuoteNotifier, get_quote_notifier
from app.services.support.activity_service import ActivityTracker, get_activity_tracker

router = APIRouter(
    prefix="/public",
    tags=["Customer Approval"],
)


@router.get(
    "/quote/{token}",
    response_model=APIResponse[PublicQuoteOut],
)
async def get_public_quote_api(
    token: str,
    db: AsyncSession = Depends(get_db),
):
    quote = await get_public_quote(db, token)
    return success_response("Quote retrieved successfully", quote)


@router.post(
    "/quote/{token}",
    response_model=APIResponse[PublicResponseOut],
)
async def respond_to_quote_api(
    token: str,
    payload: QuoteResponseIn,
    db: AsyncSession = Depends(get_db),
    notifier: QuoteNotifier = Depends(get_quote_notifier),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    result = await respond_to_quote(db, token, payload.action, notifier, tracker)
    return success_response(result.message, result)


@router.get(
    "/artwork/{token}",
    response_model=APIResponse[PublicArtworkOut],
)
async def get_public_artwork_api(
    token: str,
    db: AsyncSession = Depends(get_db),
):
    artwork = await get_public_artwork(db, token)
    return success_response("Artwork retrieved successfully", artwork)


@router.post(
    "/artwork/{token}",
    response_model=APIResponse[PublicResponseOut],
)
async def respond_to_artwork_api(
    token: str,
    payload: ArtworkResponseIn,
    db: AsyncSession = Depends(get_db),
    notifier: QuoteNotifier = Depends(get_quote_notifier),
    tracker: ActivityTracker = Depends(get_activity_tracker),
):
    result = await respond_to_artwork(db, token, payload, notifier, tracker)
    return success_response(result.message, result)
