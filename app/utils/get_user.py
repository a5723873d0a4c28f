from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.db import get_db
from app.core.exceptions import UnauthorizedException, ForbiddenException
from app.core.security import decode_access_token
from app.models.users.user_models import User
from app.utils.logger import get_logger

logger = get_logger("auth.guard")


def _bearer(authorization: Optional[str]) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        logger.warning("Missing bearer token")
        raise UnauthorizedException("Invalid authorization header")
    return token.strip()


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the staff user behind a bearer token issued by the identity service."""
    payload = decode_access_token(_bearer(authorization))

    email = payload.get("sub")
    user = None
    if email:
        user = await db.scalar(select(User).where(User.email == email))

    if not user:
        logger.warning("Token user not found", extra={"email": email})
        raise UnauthorizedException("User not found")

    if not user.is_active:
        logger.warning("Inactive user access blocked", extra={"user_id": user.id})
        raise ForbiddenException("User account is inactive")

    if user.token_version != payload.get("token_version"):
        logger.warning("Token version mismatch", extra={"user_id": user.id})
        raise UnauthorizedException("Session expired")

    request.state.user = user
    return user
