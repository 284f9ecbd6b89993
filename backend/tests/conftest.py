"""Shared fixtures: in-memory SQLite database, staff users and an API client."""

import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import httpx
import pytest
import pytest_asyncio
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import lms.models  # noqa: F401
from lms.core.database import Base, get_db
from lms.core.security import AuthenticatedUser, get_current_user
from lms.models.customer import Customer
from lms.models.enums import AgoSyncStatus, CustomerType, EntityStatus, PropertyType, UserRole
from lms.models.property import Property
from lms.models.tax import TaxAssessment
from lms.models.user import User
from lms.services.ago_client import MockAgoClient, provide_ago_client


@dataclass(frozen=True)
class Actor:
    """Plain copy of a user row, safe to use after a session rollback."""

    id: UUID
    firebase_uid: str
    email: str
    full_name: str
    role: UserRole


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


async def _add_user(db: AsyncSession, key: str, role: UserRole, full_name: str, is_active: bool = True) -> Actor:
    user = User(
        firebase_uid=f"uid-{key}",
        email=f"{key}@lms.test",
        full_name=full_name,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    return Actor(user.id, user.firebase_uid, user.email, user.full_name, user.role)


@pytest_asyncio.fixture
async def inputter(db) -> Actor:
    return await _add_user(db, "inputter", UserRole.INPUTTER, "Amina Yusuf")


@pytest_asyncio.fixture
async def other_inputter(db) -> Actor:
    return await _add_user(db, "inputter2", UserRole.INPUTTER, "Omar Farah")


@pytest_asyncio.fixture
async def approver(db) -> Actor:
    return await _add_user(db, "approver", UserRole.APPROVER, "Hodan Ali")


@pytest_asyncio.fixture
async def admin(db) -> Actor:
    return await _add_user(db, "admin", UserRole.ADMINISTRATOR, "Abdi Warsame")


@pytest_asyncio.fixture
async def viewer(db) -> Actor:
    return await _add_user(db, "viewer", UserRole.VIEWER, "Sahra Noor")


@pytest_asyncio.fixture
async def staff(inputter, other_inputter, approver, admin, viewer) -> dict[str, Actor]:
    return {
        "inputter": inputter,
        "other_inputter": other_inputter,
        "approver": approver,
        "admin": admin,
        "viewer": viewer,
    }


async def make_customer(
    db: AsyncSession,
    creator: Actor,
    status: EntityStatus = EntityStatus.DRAFT,
    reference_id: str = "CUS-2025-000001",
    approved_by: Optional[UUID] = None,
    submitted_at: Optional[datetime] = None,
) -> UUID:
    customer = Customer(
        reference_id=reference_id,
        customer_type=CustomerType.PERSON,
        display_name="Faadumo Hassan",
        status=status,
        created_by=creator.id,
        approved_by=approved_by,
        submitted_at=submitted_at,
    )
    db.add(customer)
    await db.commit()
    return customer.id


async def make_property(
    db: AsyncSession,
    creator: Actor,
    status: EntityStatus = EntityStatus.DRAFT,
    reference_id: str = "MOG-2025-000001",
    approved_by: Optional[UUID] = None,
    submitted_at: Optional[datetime] = None,
    ago_sync_status: AgoSyncStatus = AgoSyncStatus.PENDING,
) -> UUID:
    prop = Property(
        reference_id=reference_id,
        district_code="MOG",
        property_type=PropertyType.RESIDENTIAL,
        address="Maka Al Mukarama Rd 12",
        latitude=2.0469,
        longitude=45.3182,
        status=status,
        created_by=creator.id,
        approved_by=approved_by,
        submitted_at=submitted_at,
        ago_sync_status=ago_sync_status,
    )
    db.add(prop)
    await db.commit()
    return prop.id


async def make_tax_assessment(
    db: AsyncSession,
    creator: Actor,
    property_id: UUID,
    tax_year: int = 2025,
    is_archived: bool = False,
) -> UUID:
    assessment = TaxAssessment(
        reference_id=f"TAX-{tax_year}-000001",
        property_id=property_id,
        tax_year=tax_year,
        assessed_amount=Decimal("1250.00"),
        is_archived=is_archived,
        created_by=creator.id,
    )
    db.add(assessment)
    await db.commit()
    return assessment.id


@pytest.fixture
def ago_client() -> MockAgoClient:
    return MockAgoClient(success_rate=1.0)


@pytest.fixture
def login():
    """Holder for the user the API client acts as; call ``login(actor)`` to switch."""
    current: dict[str, Optional[Actor]] = {"actor": None}

    def set_actor(actor: Actor) -> None:
        current["actor"] = actor

    set_actor.current = current
    return set_actor


@pytest_asyncio.fixture
async def client(db, login, ago_client):
    from lms.main import app

    async def override_get_db():
        yield db

    async def override_current_user() -> AuthenticatedUser:
        actor = login.current["actor"]
        if actor is None:
            raise HTTPException(status_code=401, detail="Missing authorization header")
        auth_user = AuthenticatedUser(uid=actor.firebase_uid, email=actor.email, email_verified=True)
        auth_user.db_user_id = actor.id
        auth_user.role = actor.role
        auth_user.full_name = actor.full_name
        return auth_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_current_user
    app.dependency_overrides[provide_ago_client] = lambda: ago_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()
