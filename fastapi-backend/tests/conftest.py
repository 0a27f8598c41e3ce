"""Shared pytest fixtures for backend tests."""

import os
import sys
from datetime import timedelta
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add app to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Point the app at SQLite before its modules read settings
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("DATABASE_URL_OVERRIDE", TEST_DATABASE_URL)
os.environ.setdefault("JWT_SECRET", "test-secret")

from membership_api.database import Base, get_db
from membership_api.main import app
from membership_api.models import Project, ProjectMember, User
from membership_api.schemas.project_member import ProjectMemberRole
from membership_api.services.auth_service import create_access_token
from membership_api.services.membership_store import membership_store
from membership_api.services.roster import Member, Roster, UserSummary, utcnow


# ============================================================================
# Domain factories (no database)
# ============================================================================


@pytest.fixture
def make_user():
    """Factory for UserSummary objects."""
    def _make(first_name: str = "Ada", last_name: str = "Lovelace", email=None) -> UserSummary:
        return UserSummary(
            user_id=uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=email or f"{first_name.lower()}.{last_name.lower()}@example.com",
        )
    return _make


@pytest.fixture
def make_roster(make_user):
    """
    Factory for rosters from a list of roles.

    make_roster("Admin", "Member") gives a two-member roster, oldest first.
    lead_index marks which member holds the lead designation.
    """
    def _make(*roles, lead_index=None, version: int = 0, project_id=None) -> Roster:
        project_id = project_id or uuid4()
        base = utcnow() - timedelta(days=1)
        members = []
        for index, role in enumerate(roles):
            user = make_user(f"User{index}", f"Test{index}")
            created = base + timedelta(minutes=index)
            members.append(Member(
                membership_id=uuid4(),
                user_id=user.user_id,
                project_id=project_id,
                role=ProjectMemberRole(role),
                user=user,
                created_at=created,
                updated_at=created,
            ))
        lead_user_id = members[lead_index].user_id if lead_index is not None else None
        return Roster(
            project_id=project_id,
            members=tuple(members),
            version=version,
            lead_user_id=lead_user_id,
        )
    return _make


@pytest.fixture(autouse=True)
def clear_membership_store():
    """Every test starts with an empty process-wide store."""
    membership_store.clear()
    yield
    membership_store.clear()


# ============================================================================
# Database fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database dependency override."""
    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, first_name: str, last_name: str) -> User:
    user = User(
        id=uuid4(),
        email=f"{first_name.lower()}.{last_name.lower()}@example.com",
        first_name=first_name,
        last_name=last_name,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Project Admin and lead of test_project."""
    return await _create_user(db_session, "Ada", "Lovelace")


@pytest_asyncio.fixture
async def member_user(db_session: AsyncSession) -> User:
    """Regular member of test_project."""
    return await _create_user(db_session, "Alan", "Turing")


@pytest_asyncio.fixture
async def outsider_user(db_session: AsyncSession) -> User:
    """User who is not on test_project."""
    return await _create_user(db_session, "Grace", "Hopper")


@pytest_asyncio.fixture
async def test_project(db_session: AsyncSession, admin_user: User, member_user: User) -> Project:
    """Project with admin_user (Admin, lead) and member_user (Member)."""
    project = Project(
        id=uuid4(),
        key="CORE",
        name="Core Platform",
        lead_user_id=admin_user.id,
        roster_version=0,
    )
    db_session.add(project)
    await db_session.flush()

    base = utcnow() - timedelta(days=1)
    db_session.add_all([
        ProjectMember(
            id=uuid4(),
            project_id=project.id,
            user_id=admin_user.id,
            role=ProjectMemberRole.ADMIN.value,
            created_at=base,
            updated_at=base,
        ),
        ProjectMember(
            id=uuid4(),
            project_id=project.id,
            user_id=member_user.id,
            role=ProjectMemberRole.MEMBER.value,
            created_at=base + timedelta(minutes=1),
            updated_at=base + timedelta(minutes=1),
        ),
    ])
    await db_session.commit()
    return project


def _auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    """Authorization headers for the project Admin."""
    return _auth_headers(admin_user)


@pytest.fixture
def member_headers(member_user: User) -> dict:
    """Authorization headers for the regular member."""
    return _auth_headers(member_user)


@pytest.fixture
def outsider_headers(outsider_user: User) -> dict:
    """Authorization headers for the non-member."""
    return _auth_headers(outsider_user)
