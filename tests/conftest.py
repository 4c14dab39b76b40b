"""Shared pytest fixtures for backend tests."""

import os
from functools import lru_cache
from typing import AsyncGenerator, Iterable
from uuid import uuid4

# In-memory SQLite for the module-level engine; must be set before kanban.config loads
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kanban.database import Base, get_db
from kanban.main import app
from kanban.models import Permission, Project, Role, User
from kanban.services.auth_service import create_access_token
from kanban.services.notification_service import drain_background_tasks, get_notifier
from kanban.services.permission_service import Actor, build_actor
from kanban.services.project_service import ProjectService
from kanban.services.role_service import seed_permissions_and_roles
from kanban.services.settings_service import SettingsCache, get_settings_cache

TEST_PASSWORD = "TestPassword123!"

# Custom role that manages only the projects its holders own
CONTRIBUTOR_PERMISSIONS = [
    "projects.read",
    "projects.create",
    "stages.read",
    "stages.update",
    "stages.complete",
    "stages.block",
    "kanban.view",
]


@lru_cache(maxsize=None)
def get_test_password_hash(password: str) -> str:
    """
    Generate a password hash for testing.

    Uses bcrypt directly to avoid passlib version detection issues.
    """
    import bcrypt
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


class RecordingNotifier:
    """Notifier double that keeps every event it receives."""

    def __init__(self):
        self.events: list[tuple[str, object]] = []

    async def notify_member_added(self, event) -> None:
        self.events.append(("member_added", event))

    async def notify_project_moved(self, event) -> None:
        self.events.append(("project_moved", event))

    async def notify_comment_added(self, event) -> None:
        self.events.append(("comment_added", event))

    def of_kind(self, kind: str) -> list:
        return [event for k, event in self.events if k == kind]


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

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


@pytest_asyncio.fixture
async def system_roles(db_session: AsyncSession) -> dict[str, Role]:
    """Seed the permission catalogue and system roles."""
    roles = await seed_permissions_and_roles(db_session)
    await db_session.commit()
    return roles


@pytest_asyncio.fixture
async def contributor_role(db_session: AsyncSession, system_roles: dict[str, Role]) -> Role:
    """A custom role without projects.update, so holders manage only owned projects."""
    result = await db_session.execute(select(Permission))
    by_slug = {p.slug: p for p in result.scalars().all()}
    role = Role(
        name="Contributor",
        slug="contributor",
        permissions=[by_slug[s] for s in CONTRIBUTOR_PERMISSIONS],
    )
    db_session.add(role)
    await db_session.commit()
    return role


@pytest_asyncio.fixture
async def settings_cache(db_session: AsyncSession) -> SettingsCache:
    """Settings cache filled from the test database."""
    cache = SettingsCache()
    await cache.seed_defaults(db_session)
    await db_session.commit()
    await cache.refresh(db_session)
    return cache


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# =============================================================================
# Users and actors
# =============================================================================


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory creating a committed user with the given roles."""

    async def _make(
        email: str,
        roles: Iterable[Role] = (),
        display_name: str | None = None,
        is_super_admin: bool = False,
    ) -> User:
        user = User(
            id=uuid4(),
            email=email,
            password_hash=get_test_password_hash(TEST_PASSWORD),
            display_name=display_name,
            is_super_admin=is_super_admin,
            roles=list(roles),
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def actor_for(db_session: AsyncSession):
    """Resolve a user into an Actor the way requests do."""

    async def _actor(user: User) -> Actor:
        return await build_actor(db_session, user)

    return _actor


@pytest_asyncio.fixture
async def admin_user(make_user, system_roles) -> User:
    return await make_user("admin@example.com", [system_roles["admin"]], "Ada Admin")


@pytest_asyncio.fixture
async def owner_user(make_user, contributor_role) -> User:
    return await make_user("owner@example.com", [contributor_role], "Olivia Owner")


@pytest_asyncio.fixture
async def member_user(make_user, system_roles) -> User:
    return await make_user("member@example.com", [system_roles["operator"]], "Mark Member")


@pytest_asyncio.fixture
async def outsider_user(make_user, contributor_role) -> User:
    return await make_user("outsider@example.com", [contributor_role], "Oscar Outsider")


@pytest_asyncio.fixture
async def admin(admin_user, actor_for) -> Actor:
    return await actor_for(admin_user)


@pytest_asyncio.fixture
async def owner(owner_user, actor_for) -> Actor:
    return await actor_for(owner_user)


@pytest_asyncio.fixture
async def member(member_user, actor_for) -> Actor:
    return await actor_for(member_user)


@pytest_asyncio.fixture
async def outsider(outsider_user, actor_for) -> Actor:
    return await actor_for(outsider_user)


# =============================================================================
# Projects
# =============================================================================


@pytest_asyncio.fixture
async def project(db_session: AsyncSession, owner: Actor, member_user: User) -> Project:
    """A fresh project owned by ``owner_user`` with ``member_user`` on the team."""
    service = ProjectService(db_session)
    created = await service.create_project(owner, "Billing migration", "Move invoicing to the new ERP")
    return await service.add_member(created.id, member_user.id, owner)


# =============================================================================
# HTTP
# =============================================================================


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    settings_cache: SettingsCache,
    notifier: RecordingNotifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with session, settings and notifier overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings_cache] = lambda: settings_cache
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    await drain_background_tasks(timeout=5)
    app.dependency_overrides.clear()


def auth_headers_for(user: User) -> dict:
    """Create authorization headers for ``user``."""
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def owner_headers(owner_user: User) -> dict:
    return auth_headers_for(owner_user)


@pytest.fixture
def member_headers(member_user: User) -> dict:
    return auth_headers_for(member_user)


@pytest.fixture
def outsider_headers(outsider_user: User) -> dict:
    return auth_headers_for(outsider_user)


@pytest.fixture
def headers_for():
    return auth_headers_for
