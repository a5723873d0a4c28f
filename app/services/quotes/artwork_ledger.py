# app/services/quotes/artwork_ledger.py
"""
Artwork versions for a quote.

The quote row holds the current artwork; every re-upload first archives the
outgoing one into ``artwork_versions`` with the disposition it had reached.
Archived rows are never modified.
"""

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.site import SiteSettings
from app.core.exceptions import ConflictException, NotFoundException, ForbiddenException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.models.base.mixins import utcnow
from app.models.quotes.quote_models import Quote
from app.models.quotes.artwork_version_models import ArtworkVersion
from app.models.enums.artwork_status import ArtworkStatus
from app.models.enums.quote_status import QuoteStatus, ARTWORK_STATUSES
from app.models.enums.user_role import UserRole
from app.schemas.quotes.artwork_schemas import (
    ArtworkUploadIn,
    ArtworkOut,
    ArtworkSendResult,
    ArtworkVersionOut,
    ArtworkVersionListData,
)
from app.services.quotes import audit_recorder as audit
from app.services.quotes.actors import InternalActor
from app.services.quotes.quote_store import load_quote, resolve_customer_email, touch
from app.services.quotes.transitions import ensure_transition
from app.utils.tokens import generate_token
from app.utils.logger import get_logger

logger = get_logger(__name__)


# =====================================================
# DISPOSITION
# =====================================================

def infer_artwork_status(quote) -> ArtworkStatus:
    """Explicit status when stored, otherwise derived from the timestamps."""
    if quote.artwork_status is not None:
        return ArtworkStatus(quote.artwork_status)
    if quote.artwork_approved_at:
        return ArtworkStatus.APPROVED
    if quote.artwork_declined_at:
        return ArtworkStatus.DECLINED
    if quote.artwork_sent_at:
        return ArtworkStatus.SENT
    return ArtworkStatus.PENDING


def artwork_response_state(quote) -> str:
    status = infer_artwork_status(quote)
    if status == ArtworkStatus.APPROVED:
        return "approved"
    if status == ArtworkStatus.DECLINED:
        return "declined"
    return "pending"


def _map_artwork(q: Quote, site: SiteSettings | None = None) -> ArtworkOut:
    return ArtworkOut(
        quote_id=q.id,
        quote_number=q.quote_number,
        quote_status=q.status,
        artwork_url=q.artwork_url,
        artwork_file_name=q.artwork_file_name,
        artwork_version=q.artwork_version,
        artwork_status=q.artwork_status,
        artwork_required=q.artwork_required,
        sent_at=q.artwork_sent_at,
        approved_at=q.artwork_approved_at,
        declined_at=q.artwork_declined_at,
        notes=q.artwork_notes,
        response_state=artwork_response_state(q),
        approval_url=site.artwork_link(q.artwork_token) if site and q.artwork_token else None,
    )


async def _track_status_change(tracker, q: Quote, previous: QuoteStatus, actor) -> None:
    if tracker is None or previous == q.status:
        return
    await tracker.track(
        entity_type="quote",
        entity_id=q.id,
        code=ActivityCode.CHANGE_QUOTE_STATUS,
        actor_id=getattr(actor, "id", None),
        old_value={"status": previous.value},
        new_value={"status": q.status.value},
        actor_label=actor.label,
        target_name=q.quote_number,
        old_status=previous.value,
        new_status=q.status.value,
    )


# =====================================================
# READ
# =====================================================

async def get_artwork(
    db: AsyncSession,
    quote_id: int,
    site: SiteSettings,
) -> ArtworkOut:
    q = await load_quote(db, quote_id)
    return _map_artwork(q, site)


async def list_artwork_versions(
    db: AsyncSession,
    quote_id: int,
) -> ArtworkVersionListData:
    q = await load_quote(db, quote_id)

    items: list[ArtworkVersionOut] = []
    if q.artwork_url:
        items.append(
            ArtworkVersionOut(
                id=None,
                version=q.artwork_version,
                url=q.artwork_url,
                file_name=q.artwork_file_name,
                status=infer_artwork_status(q),
                sent_at=q.artwork_sent_at,
                approved_at=q.artwork_approved_at,
                declined_at=q.artwork_declined_at,
                customer_notes=q.artwork_notes,
                uploaded_by_name=None,
                uploaded_by_email=None,
                created_at=q.last_modified_at,
                is_current=True,
            )
        )

    result = await db.execute(
        select(ArtworkVersion)
        .where(ArtworkVersion.quote_id == quote_id)
        .order_by(desc(ArtworkVersion.version), desc(ArtworkVersion.id))
    )
    for v in result.scalars().all():
        items.append(
            ArtworkVersionOut(
                id=v.id,
                version=v.version,
                url=v.url,
                file_name=v.file_name,
                status=v.status,
                sent_at=v.sent_at,
                approved_at=v.approved_at,
                declined_at=v.declined_at,
                customer_notes=v.customer_notes,
                uploaded_by_name=v.uploaded_by_name,
                uploaded_by_email=v.uploaded_by_email,
                created_at=v.created_at,
                is_current=False,
            )
        )

    return ArtworkVersionListData(total=len(items), items=items)


# =====================================================
# UPLOAD
# =====================================================

def _archive_current(db: AsyncSession, q: Quote, actor: InternalActor) -> ArtworkVersion:
    archived = ArtworkVersion(
        quote_id=q.id,
        version=q.artwork_version,
        url=q.artwork_url,
        file_name=q.artwork_file_name,
        status=infer_artwork_status(q),
        sent_at=q.artwork_sent_at,
        approved_at=q.artwork_approved_at,
        declined_at=q.artwork_declined_at,
        customer_notes=q.artwork_notes,
        uploaded_by_id=actor.id,
        uploaded_by_name=actor.name,
        uploaded_by_email=actor.email,
    )
    db.add(archived)
    return archived


async def upload_artwork(
    db: AsyncSession,
    quote_id: int,
    payload: ArtworkUploadIn,
    actor: InternalActor,
    site: SiteSettings,
    tracker=None,
) -> ArtworkOut:
    q = await load_quote(db, quote_id, for_update=True)
    previous_status = QuoteStatus(q.status)

    # a quote waiting on artwork goes back to PENDING once the artwork changes
    revert = previous_status in ARTWORK_STATUSES
    if revert:
        ensure_transition(previous_status, QuoteStatus.PENDING)

    is_reupload = bool(q.artwork_url)
    drafts = []

    if is_reupload:
        archived = _archive_current(db, q, actor)
        new_version = q.artwork_version + 1
        drafts.append(
            audit.artwork_updated_event(
                previous_version=archived.version,
                previous_status=archived.status,
                version=new_version,
                file_name=payload.file_name,
                url=payload.url,
            )
        )
    else:
        new_version = 1
        drafts.append(audit.artwork_uploaded_event(new_version, payload.file_name, payload.url))

    q.artwork_url = payload.url
    q.artwork_file_name = payload.file_name
    q.artwork_version = new_version
    q.artwork_status = ArtworkStatus.PENDING
    q.artwork_sent_at = None
    q.artwork_approved_at = None
    q.artwork_declined_at = None
    q.artwork_notes = None
    q.artwork_required = True
    if not q.artwork_token:
        q.artwork_token = generate_token()

    if revert:
        q.status = QuoteStatus.PENDING
        drafts.append(audit.status_change_event(previous_status, QuoteStatus.PENDING, actor))

    touch(q, actor)
    audit.record_audit_entries(db, q, drafts, actor)

    await db.commit()

    logger.info(
        "Artwork uploaded",
        extra={"quote_id": q.id, "artwork_version": new_version, "reupload": is_reupload},
    )

    await _track_status_change(tracker, q, previous_status, actor)
    return _map_artwork(q, site)


# =====================================================
# SEND FOR APPROVAL
# =====================================================

async def send_artwork_for_approval(
    db: AsyncSession,
    quote_id: int,
    actor: InternalActor,
    site: SiteSettings,
    notifier,
    tracker=None,
) -> ArtworkSendResult:
    q = await load_quote(db, quote_id, for_update=True)

    if not q.artwork_url or not q.artwork_token:
        raise ConflictException("Upload artwork before sending it for approval", ErrorCode.NO_ARTWORK)

    recipient = resolve_customer_email(q)
    if not recipient:
        raise ConflictException("Quote has no customer email", ErrorCode.NO_CUSTOMER_EMAIL)

    previous_status = QuoteStatus(q.status)
    if previous_status != QuoteStatus.ARTWORK_PENDING:
        ensure_transition(previous_status, QuoteStatus.ARTWORK_PENDING)

    q.artwork_sent_at = utcnow()
    q.artwork_approved_at = None
    q.artwork_declined_at = None
    q.artwork_notes = None
    q.artwork_status = ArtworkStatus.SENT

    drafts = [audit.artwork_sent_event(recipient, q.artwork_version)]
    if previous_status != QuoteStatus.ARTWORK_PENDING:
        q.status = QuoteStatus.ARTWORK_PENDING
        drafts.append(audit.status_change_event(previous_status, QuoteStatus.ARTWORK_PENDING, actor))

    touch(q, actor)
    audit.record_audit_entries(db, q, drafts, actor)

    await db.commit()

    # state is committed; the email is best-effort
    result = await notifier.artwork_ready(q, recipient)
    if result.success:
        message = f"Artwork sent to {recipient} for approval"
    else:
        message = (
            "Artwork marked as sent, but the approval email could not be delivered"
            + (f": {result.error}" if result.error else "")
        )

    await _track_status_change(tracker, q, previous_status, actor)

    return ArtworkSendResult(
        artwork=_map_artwork(q, site),
        email_sent=result.success,
        message=message,
    )


# =====================================================
# REMOVE
# =====================================================

async def remove_artwork(
    db: AsyncSession,
    quote_id: int,
    actor: InternalActor,
    tracker=None,
) -> ArtworkOut:
    if not actor.has_role(UserRole.SUPER_ADMIN):
        raise ForbiddenException("Only SUPER_ADMIN can remove artwork")

    q = await load_quote(db, quote_id, for_update=True)
    if not q.artwork_url:
        raise NotFoundException("Quote has no artwork", ErrorCode.NO_ARTWORK)

    previous_status = QuoteStatus(q.status)
    drafts = [audit.artwork_removed_event(q.artwork_version, q.artwork_file_name, q.artwork_url)]

    q.artwork_url = None
    q.artwork_file_name = None
    q.artwork_token = None
    q.artwork_sent_at = None
    q.artwork_approved_at = None
    q.artwork_declined_at = None
    q.artwork_notes = None
    q.artwork_status = None
    q.artwork_version = 1

    if previous_status in ARTWORK_STATUSES:
        q.status = QuoteStatus.PENDING
        drafts.append(audit.status_change_event(previous_status, QuoteStatus.PENDING, actor))

    touch(q, actor)
    audit.record_audit_entries(db, q, drafts, actor)

    await db.commit()

    logger.info("Artwork removed", extra={"quote_id": q.id})

    await _track_status_change(tracker, q, previous_status, actor)
    return _map_artwork(q)
