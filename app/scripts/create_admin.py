# Seed a staff user and print a bearer token for it.
#   python -m app.scripts.create_admin admin@example.com "Admin" SUPER_ADMIN
import asyncio
import sys

from sqlalchemy import select

from app.core.db import AsyncSessionLocal
from app.core.security import create_access_token
from app.models.enums.user_role import UserRole
from app.models.users.user_models import User


async def create_admin(email: str, name: str, role: UserRole):
    async with AsyncSessionLocal() as session:
        user = await session.scalar(select(User).where(User.email == email))
        if user is None:
            user = User(email=email, name=name, role=role, is_active=True)
            session.add(user)
            await session.commit()
            print(f"User {email} created with role {role.value}")
        else:
            print(f"User {email} already exists")

        print(create_access_token(user.email, user.token_version))


if __name__ == "__main__":
    args = sys.argv[1:]
    email = args[0] if args else "admin@example.com"
    name = args[1] if len(args) > 1 else "Admin"
    role = UserRole(args[2]) if len(args) > 2 else UserRole.SUPER_ADMIN
    asyncio.run(create_admin(email, name, role))
