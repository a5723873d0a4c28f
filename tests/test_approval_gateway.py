from datetime import date, timedelta

import pytest

from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import ConflictException, NotFoundException
from app.models.enums.artwork_status import ArtworkStatus
from app.models.enums.audit_action import AuditActorType, QuoteAuditAction as A
from app.models.enums.quote_status import QuoteStatus
from app.schemas.quotes.artwork_schemas import ArtworkUploadIn
from app.schemas.quotes.public_schemas import ArtworkResponseIn
from app.schemas.quotes.quote_schemas import QuoteUpdate
from app.services.quotes import approval_gateway as gateway
from app.services.quotes import artwork_ledger as ledger
from app.services.quotes import quote_service as svc
from app.services.quotes.audit_recorder import list_audit_entries
from tests.helpers import make_quote

PROOF = ArtworkUploadIn(url="https://files.test/proof.pdf", file_name="proof.pdf")


def _token(url: str) -> str:
    return url.rsplit("/", 1)[1]


async def _sent_quote(db, actors, site, notifier, **overrides) -> tuple[int, str]:
    q = await svc.create_quote(db, make_quote(internal_notes="Margin is thin", **overrides), actors["admin"])
    result = await svc.send_quote(db, q.id, actors["admin"], site, notifier)
    return q.id, _token(result.quote_url)


async def _artwork_out(db, actors, site, notifier) -> tuple[int, str]:
    q = await svc.create_quote(db, make_quote(artwork_required=True), actors["admin"])
    await ledger.upload_artwork(db, q.id, PROOF, actors["admin"], site)
    result = await ledger.send_artwork_for_approval(db, q.id, actors["admin"], site, notifier)
    return q.id, _token(result.artwork.approval_url)


async def _audit(db, quote_id):
    data = await list_audit_entries(db, quote_id)
    return list(reversed(data.items))


# =====================================================
# QUOTE
# =====================================================

async def test_public_quote_hides_internal_details(db, actors, site, notifier):
    _, token = await _sent_quote(db, actors, site, notifier)

    view = await gateway.get_public_quote(db, token)

    assert view.status == QuoteStatus.SENT
    assert view.response_state == "pending"
    assert view.is_expired is False
    assert view.customer_name == "Walk-in Wendy"
    assert "internal_notes" not in view.model_dump()
    assert "owner" not in view.model_dump()


async def test_unknown_token(db):
    with pytest.raises(NotFoundException):
        await gateway.get_public_quote(db, "0" * 64)


async def test_customer_declines_once(db, actors, site, notifier, sender, tracker):
    quote_id, token = await _sent_quote(db, actors, site, notifier)

    result = await gateway.respond_to_quote(db, token, "decline", notifier, tracker)

    assert result.status == QuoteStatus.DECLINED
    assert result.response_state == "declined"
    assert result.already_responded is False

    quote = await svc.get_quote(db, quote_id)
    assert quote.declined_at is not None

    entries = await _audit(db, quote_id)
    decision = entries[-1]
    assert decision.action == A.STATUS_CHANGE
    assert decision.actor_type == AuditActorType.CUSTOMER
    assert decision.description == "Status changed from SENT to DECLINED by customer"

    # owner has no email of their own, the shop inbox gets it
    assert sender.sent[-1].to == "orders@shop.com"
    assert "Declined" in sender.sent[-1].subject
    assert tracker.codes == [ActivityCode.CHANGE_QUOTE_STATUS]

    again = await gateway.respond_to_quote(db, token, "decline", notifier, tracker)

    assert again.already_responded is True
    assert again.response_state == "declined"
    assert len(await _audit(db, quote_id)) == len(entries)
    assert len(tracker.calls) == 1


async def test_customer_approves(db, actors, site, notifier):
    quote_id, token = await _sent_quote(db, actors, site, notifier)

    result = await gateway.respond_to_quote(db, token, "approve", notifier)

    assert result.status == QuoteStatus.APPROVED
    assert (await svc.get_quote(db, quote_id)).approved_at is not None

    # a later decline does not overturn the approval
    again = await gateway.respond_to_quote(db, token, "decline", notifier)
    assert again.already_responded is True
    assert again.status == QuoteStatus.APPROVED


async def test_owner_is_notified_directly(db, actors, site, notifier, sender):
    quote_id, token = await _sent_quote(db, actors, site, notifier, owner_id=actors["admin"].id)

    await gateway.respond_to_quote(db, token, "approve", notifier)

    assert sender.sent[-1].to == "admin@shop.com"
    assert "Approved" in sender.sent[-1].subject


async def test_response_requires_sent_status(db, actors, site, notifier):
    quote_id, token = await _sent_quote(db, actors, site, notifier)
    await svc.update_quote(db, quote_id, QuoteUpdate(status=QuoteStatus.REVIEWING), actors["admin"])

    with pytest.raises(ConflictException) as exc:
        await gateway.respond_to_quote(db, token, "approve", notifier)
    assert exc.value.error_code == ErrorCode.QUOTE_NOT_AWAITING_RESPONSE


async def test_expired_quote_cannot_be_approved(db, actors, site, notifier):
    yesterday = date.today() - timedelta(days=1)
    quote_id, token = await _sent_quote(db, actors, site, notifier, valid_until=yesterday)

    view = await gateway.get_public_quote(db, token)
    assert view.is_expired is True

    with pytest.raises(ConflictException) as exc:
        await gateway.respond_to_quote(db, token, "approve", notifier)
    assert exc.value.error_code == ErrorCode.QUOTE_EXPIRED


async def test_quote_valid_through_today(db, actors, site, notifier):
    _, token = await _sent_quote(db, actors, site, notifier, valid_until=date.today())

    result = await gateway.respond_to_quote(db, token, "approve", notifier)
    assert result.status == QuoteStatus.APPROVED


# =====================================================
# ARTWORK
# =====================================================

async def test_artwork_must_be_shared_first(db, actors, site):
    q = await svc.create_quote(db, make_quote(), actors["admin"])
    art = await ledger.upload_artwork(db, q.id, PROOF, actors["admin"], site)

    with pytest.raises(ConflictException) as exc:
        await gateway.get_public_artwork(db, _token(art.approval_url))
    assert exc.value.error_code == ErrorCode.ARTWORK_NOT_SHARED


async def test_public_artwork_view(db, actors, site, notifier):
    _, token = await _artwork_out(db, actors, site, notifier)

    view = await gateway.get_public_artwork(db, token)

    assert view.artwork_url == PROOF.url
    assert view.response_state == "pending"
    assert view.quote_status == QuoteStatus.ARTWORK_PENDING
    assert view.quote_state == "pending"
    assert view.can_approve_quote is False


async def test_artwork_approval_then_quote_approval(db, actors, site, notifier, sender, tracker):
    quote_id, token = await _artwork_out(db, actors, site, notifier)

    result = await gateway.respond_to_artwork(
        db, token, ArtworkResponseIn(action="approve"), notifier, tracker
    )

    assert result.status == QuoteStatus.ARTWORK_APPROVED
    assert result.response_state == "approved"
    assert result.can_approve_quote is True
    assert "Artwork Approved" in sender.sent[-1].subject

    art = await ledger.get_artwork(db, quote_id, site)
    assert art.artwork_status == ArtworkStatus.APPROVED
    assert art.approved_at is not None

    again = await gateway.respond_to_artwork(db, token, ArtworkResponseIn(action="decline"), notifier)
    assert again.already_responded is True
    assert again.response_state == "approved"

    final = await gateway.respond_to_artwork(
        db, token, ArtworkResponseIn(action="approve", type="quote"), notifier, tracker
    )
    assert final.status == QuoteStatus.APPROVED
    assert final.quote_state == "approved"

    actions = [e.action for e in await _audit(db, quote_id)]
    assert actions[-3:] == [A.ARTWORK_APPROVED, A.STATUS_CHANGE, A.STATUS_CHANGE]
    assert tracker.codes == [ActivityCode.CHANGE_QUOTE_STATUS, ActivityCode.CHANGE_QUOTE_STATUS]


async def test_artwork_decline_keeps_quote_open(db, actors, site, notifier, sender):
    quote_id, token = await _artwork_out(db, actors, site, notifier)

    result = await gateway.respond_to_artwork(
        db, token, ArtworkResponseIn(action="decline", notes="Logo is too small"), notifier
    )

    assert result.status == QuoteStatus.ARTWORK_DECLINED
    assert result.response_state == "declined"
    assert result.can_approve_quote is False

    art = await ledger.get_artwork(db, quote_id, site)
    assert art.notes == "Logo is too small"

    entries = await _audit(db, quote_id)
    assert entries[-2].action == A.ARTWORK_DECLINED
    assert entries[-2].new_value["notes"] == "Logo is too small"
    assert entries[-1].description == "Status changed from ARTWORK_PENDING to ARTWORK_DECLINED by customer"
    assert "Logo is too small" in sender.sent[-1].html


async def test_quote_approval_needs_approved_artwork(db, actors, site, notifier):
    _, token = await _artwork_out(db, actors, site, notifier)

    with pytest.raises(ConflictException) as exc:
        await gateway.respond_to_artwork(
            db, token, ArtworkResponseIn(action="approve", type="quote"), notifier
        )
    assert exc.value.error_code == ErrorCode.ARTWORK_NOT_APPROVED


async def test_new_artwork_version_can_be_answered_again(db, actors, site, notifier):
    quote_id, token = await _artwork_out(db, actors, site, notifier)
    await gateway.respond_to_artwork(db, token, ArtworkResponseIn(action="decline"), notifier)

    await ledger.upload_artwork(
        db, quote_id, ArtworkUploadIn(url="https://files.test/proof-v2.pdf"), actors["admin"], site
    )
    await ledger.send_artwork_for_approval(db, quote_id, actors["admin"], site, notifier)

    result = await gateway.respond_to_artwork(db, token, ArtworkResponseIn(action="approve"), notifier)

    assert result.already_responded is False
    assert result.status == QuoteStatus.ARTWORK_APPROVED


async def test_repeat_artwork_answers_keep_the_first_one(db, actors, site, notifier, sender):
    quote_id, token = await _artwork_out(db, actors, site, notifier)
    await gateway.respond_to_artwork(
        db, token, ArtworkResponseIn(action="decline", notes="Wrong colour"), notifier
    )
    entries = await _audit(db, quote_id)
    mails = len(sender.sent)

    again = await gateway.respond_to_artwork(db, token, ArtworkResponseIn(action="approve"), notifier)

    assert again.already_responded is True
    assert again.response_state == "declined"
    assert again.status == QuoteStatus.ARTWORK_DECLINED
    assert again.can_approve_quote is False
    assert len(await _audit(db, quote_id)) == len(entries)
    assert len(sender.sent) == mails

    art = await ledger.get_artwork(db, quote_id, site)
    assert art.artwork_status == ArtworkStatus.DECLINED
    assert art.notes == "Wrong colour"


# =====================================================
# ARCHIVED
# =====================================================

async def test_archived_quote_keeps_its_answer(db, actors, site, notifier):
    quote_id, token = await _sent_quote(db, actors, site, notifier)
    await gateway.respond_to_quote(db, token, "approve", notifier)
    await svc.update_quote(db, quote_id, QuoteUpdate(status=QuoteStatus.ARCHIVED), actors["super"])
    entries = await _audit(db, quote_id)

    again = await gateway.respond_to_quote(db, token, "decline", notifier)

    assert again.already_responded is True
    assert again.response_state == "approved"
    assert again.status == QuoteStatus.ARCHIVED
    assert len(await _audit(db, quote_id)) == len(entries)

    view = await gateway.get_public_quote(db, token)
    assert view.response_state == "approved"


async def test_archived_unanswered_quote_is_closed(db, actors, site, notifier):
    quote_id, token = await _sent_quote(db, actors, site, notifier)
    await svc.update_quote(db, quote_id, QuoteUpdate(status=QuoteStatus.ARCHIVED), actors["super"])

    with pytest.raises(ConflictException) as exc:
        await gateway.respond_to_quote(db, token, "approve", notifier)
    assert exc.value.error_code == ErrorCode.QUOTE_NOT_AWAITING_RESPONSE
