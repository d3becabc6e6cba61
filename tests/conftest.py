"""Pytest fixtures for OrderDesk tests.

Every test gets a fresh in-memory SQLite database.  ``StaticPool`` keeps a
single connection so sessions opened by sweeps and request handlers see
the same data as the test's own session.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import src.models  # noqa: F401
from src.app import app
from src.database.base import Base
from src.database.session import get_db
from src.models.audit import AuditLog
from src.models.category import Category
from src.models.enums import (
    MemberRole,
    MemberStatus,
    OrderSla,
    OrderStatus,
    StaffStatus,
    UserRole,
)
from src.models.order import Order
from src.models.reseller_member import ResellerMember
from src.models.staff_member import StaffMember
from src.models.team import Team
from src.models.user import User
from src.modules.files.storage import LocalBlobStore, get_blob_store
from src.modules.identity.auth import create_access_token
from src.modules.identity.resolver import RoleResolver
from src.modules.identity.roles import Principal

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(root=tmp_path / "blobs", public_base_url="http://test/blobs")


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------


class Builder:
    """Inserts rows directly, bypassing services, to set up test state."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def user(self, role: UserRole, name: str | None = None) -> User:
        user = User(email=f"{role.value}-{uuid.uuid4().hex[:10]}@example.com", name=name, role=role)
        self.db.add(user)
        await self.db.flush()
        return user

    async def owner(self) -> User:
        return await self.user(UserRole.OWNER, "Owner")

    async def staff(self, is_active: bool = True) -> User:
        user = await self.user(UserRole.STAFF, "Staff")
        self.db.add(StaffMember(user_id=user.id, status=StaffStatus.ONLINE, is_active=is_active))
        await self.db.flush()
        return user

    async def team(self, name: str = "Bright Mango Crew") -> Team:
        team = Team(name=name, slug=f"team-{uuid.uuid4().hex[:10]}")
        self.db.add(team)
        await self.db.flush()
        return team

    async def member(
        self,
        team: Team,
        user: User | None = None,
        role: MemberRole = MemberRole.MEMBER,
        status: MemberStatus = MemberStatus.ACTIVE_MEMBER,
        is_active: bool = True,
        is_blocked: bool = False,
    ) -> User:
        """Add a reseller membership (creating the reseller when ``user`` is None)."""
        if user is None:
            user = await self.user(UserRole.RESELLER, "Reseller")
        self.db.add(
            ResellerMember(
                team_id=team.id,
                user_id=user.id,
                role=role,
                status=status,
                is_active=is_active,
                is_blocked=is_blocked,
            )
        )
        await self.db.flush()
        return user

    async def admin(self, team: Team) -> User:
        return await self.member(team, role=MemberRole.ADMIN)

    async def category(self, is_active: bool = True) -> Category:
        category = Category(
            name="Groceries", slug=f"groceries-{uuid.uuid4().hex[:8]}", is_active=is_active
        )
        self.db.add(category)
        await self.db.flush()
        return category

    async def order(
        self,
        team: Team,
        creator: User,
        status: OrderStatus = OrderStatus.SUBMITTED,
        picked_by: User | None = None,
        created_at: datetime | None = None,
        category: Category | None = None,
        **overrides,
    ) -> Order:
        if category is None:
            category = await self.category()
        values = dict(
            team_id=team.id,
            created_by_user_id=creator.id,
            picked_by_staff_user_id=picked_by.id if picked_by else None,
            category_id=category.id,
            sla=OrderSla.TODAY,
            cart_value_usd=Decimal("42.50"),
            merchant="Corner Market",
            customer_name="Dana Customer",
            country="PT",
            city="Lisbon",
            attachment_file_ids=[],
            status=status,
            read_access_user_ids=[],
            write_access_user_ids=[],
            passes=[],
        )
        if created_at is not None:
            values["created_at"] = created_at
            values["updated_at"] = created_at
        values.update(overrides)
        order = Order(**values)
        self.db.add(order)
        await self.db.flush()
        return order

    async def principal(self, user: User) -> Principal:
        return await RoleResolver(self.db).resolve(user.id)

    async def audit_count(self, order_id: uuid.UUID, action: str | None = None) -> int:
        query = select(func.count()).select_from(AuditLog).where(AuditLog.order_id == order_id)
        if action is not None:
            query = query.where(AuditLog.action == action)
        return (await self.db.execute(query)).scalar() or 0

    @staticmethod
    def headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def make(db) -> Builder:
    return Builder(db)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def async_client(session_factory, blob_store) -> AsyncGenerator[AsyncClient, None]:
    """httpx client against the app, one committed session per request."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
