# app/services/quotes/transitions.py

from app.constants.error_codes import ErrorCode
from app.core.exceptions import ConflictException, ForbiddenException
from app.models.enums.quote_status import QuoteStatus
from app.models.enums.user_role import UserRole

S = QuoteStatus

ALLOWED_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    S.PENDING: frozenset({
        S.REVIEWING, S.SENT, S.ARTWORK_PENDING, S.APPROVED, S.DECLINED, S.ARCHIVED,
    }),
    S.REVIEWING: frozenset({
        S.PENDING, S.SENT, S.ARTWORK_PENDING, S.APPROVED, S.DECLINED, S.ARCHIVED,
    }),
    S.SENT: frozenset({
        S.PENDING, S.REVIEWING, S.ARTWORK_PENDING, S.APPROVED, S.DECLINED, S.ARCHIVED,
    }),
    S.ARTWORK_PENDING: frozenset({
        S.PENDING, S.REVIEWING, S.SENT, S.ARTWORK_APPROVED, S.ARTWORK_DECLINED,
        S.APPROVED, S.DECLINED, S.ARCHIVED,
    }),
    S.ARTWORK_APPROVED: frozenset({
        S.PENDING, S.ARTWORK_PENDING, S.APPROVED, S.DECLINED, S.ARCHIVED,
    }),
    S.ARTWORK_DECLINED: frozenset({
        S.PENDING, S.ARTWORK_PENDING, S.DECLINED, S.ARCHIVED,
    }),
    S.APPROVED: frozenset({S.ARCHIVED}),
    S.DECLINED: frozenset({S.ARCHIVED}),
    S.ARCHIVED: frozenset(),
}

# Moving into these states needs more than the ADMIN role.
RESTRICTED_TARGETS = {
    S.ARCHIVED: UserRole.SUPER_ADMIN,
}


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: QuoteStatus, target: QuoteStatus) -> None:
    if not can_transition(current, target):
        raise ConflictException(
            f"Cannot change status from {current.value} to {target.value}",
            ErrorCode.QUOTE_INVALID_TRANSITION,
            {"from": current.value, "to": target.value},
        )


def ensure_role_for_target(actor, target: QuoteStatus) -> None:
    required = RESTRICTED_TARGETS.get(target)
    if required and not actor.has_role(required):
        raise ForbiddenException(
            f"Only {required.value} can move a quote to {target.value}",
        )
