from fastapi import Depends

from app.core.exceptions import ForbiddenException
from app.models.enums.user_role import UserRole
from app.models.users.user_models import User
from app.services.quotes.actors import InternalActor
from app.utils.get_user import get_current_user


def require_role(min_role: UserRole):
    """Allow ``min_role`` and every role ranked above it."""
    async def role_checker(user: User = Depends(get_current_user)) -> InternalActor:
        actor = InternalActor.from_user(user)
        if not actor.has_role(min_role):
            raise ForbiddenException(
                "Permission denied",
                details={"required_role": min_role.value, "role": actor.role.value},
            )
        return actor
    return role_checker
