from sqlalchemy import Column, Integer, String, Boolean, Enum

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.user_role import UserRole


class User(Base, TimestampMixin):
    """Internal staff account. Owned by the identity service; read-only here."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.EDITOR)
    is_active = Column(Boolean, default=True, nullable=False)
    token_version = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={self.role}>"
