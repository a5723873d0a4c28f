"""Shared fixtures: a throwaway SQLite database, staff users, fakes for the
email relay and the activity feed, and an HTTP client over the ASGI app."""

import os
import tempfile

# app.core.config validates the environment at import time
_TMP_DIR = tempfile.mkdtemp(prefix="printshop-tests-")
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-secret-key"
os.environ["PUBLIC_BASE_URL"] = "https://shop.test"
os.environ["SITE_NAME"] = "Test Print Co"
os.environ["SITE_CONTACT_EMAIL"] = "orders@shop.com"
os.environ["EMAIL_API_URL"] = ""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import AsyncSessionLocal, Base, engine
from app.core.site import SiteSettings
from app.models.customers.customer_models import Customer
from app.models.enums.user_role import UserRole
from app.models.users.user_models import User
from app.services.notifications.quote_notifier import QuoteNotifier
from app.services.quotes.actors import InternalActor
from tests.helpers import FakeEmailSender, FakeTracker


# =====================================================
# DATABASE
# =====================================================

@pytest_asyncio.fixture(autouse=True)
async def reset_db() -> AsyncGenerator[None, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # pooled aiosqlite connections must not outlive the test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def actors(db) -> dict[str, InternalActor]:
    users = {
        "super": User(name="Sam Super", email="super@shop.com", role=UserRole.SUPER_ADMIN),
        "admin": User(name="Ada Admin", email="admin@shop.com", role=UserRole.ADMIN),
        "editor": User(name="Eli Editor", email="editor@shop.com", role=UserRole.EDITOR),
    }
    db.add_all(users.values())
    await db.commit()
    return {key: InternalActor.from_user(user) for key, user in users.items()}


@pytest_asyncio.fixture
async def customer(db) -> Customer:
    c = Customer(
        company_name="Acme Signs",
        contact_name="Carla Buyer",
        email="carla@acme.com",
        phone="555-0100",
    )
    db.add(c)
    await db.commit()
    return c


# =====================================================
# COLLABORATORS
# =====================================================

@pytest.fixture
def site() -> SiteSettings:
    return SiteSettings(
        base_url="https://shop.test",
        name="Test Print Co",
        contact_email="orders@shop.com",
    )


@pytest.fixture
def sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def notifier(sender, site) -> QuoteNotifier:
    return QuoteNotifier(sender, site)


# =====================================================
# HTTP
# =====================================================

@pytest_asyncio.fixture
async def client(sender, tracker) -> AsyncGenerator[AsyncClient, None]:
    from main import app
    from app.services.notifications.email_sender import get_email_sender
    from app.services.support.activity_service import get_activity_tracker

    app.dependency_overrides[get_email_sender] = lambda: sender
    app.dependency_overrides[get_activity_tracker] = lambda: tracker

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
