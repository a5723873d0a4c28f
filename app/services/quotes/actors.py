from dataclasses import dataclass
from typing import Optional, Union

from app.models.enums.audit_action import AuditActorType
from app.models.enums.user_role import UserRole


@dataclass(frozen=True)
class InternalActor:
    """Authenticated staff member acting through the admin API."""

    id: int
    name: str
    email: str
    role: UserRole

    @property
    def actor_type(self) -> AuditActorType:
        return AuditActorType.ADMIN

    @property
    def label(self) -> str:
        return f"{self.role.value.replace('_', ' ').title()} ({self.email})"

    def has_role(self, min_role: UserRole) -> bool:
        return self.role.at_least(min_role)

    @classmethod
    def from_user(cls, user) -> "InternalActor":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=UserRole(user.role),
        )


@dataclass(frozen=True)
class CustomerActor:
    """Anonymous customer holding a quote or artwork token."""

    email: Optional[str] = None

    @property
    def actor_type(self) -> AuditActorType:
        return AuditActorType.CUSTOMER

    @property
    def label(self) -> str:
        return f"Customer ({self.email})" if self.email else "Customer"


Actor = Union[InternalActor, CustomerActor]
