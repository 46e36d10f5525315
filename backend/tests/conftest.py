# tests/conftest.py — Shared test fixtures
import os
import dataclasses

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""

from models import Base, User, Role, RoleName
from auth import AuthService
from config import get_settings
from database import get_db_session
from email_service import EmailService, get_email_service
from seed import seed_roles
from main import app

DEFAULT_PASSWORD = "Passw0rd!"


class RecordingEmailService(EmailService):
    """Keeps reset links in memory instead of mailing them"""

    def __init__(self, settings):
        super().__init__(settings)
        self.sent = []

    async def send_password_reset_email(self, email: str, reset_link: str) -> bool:
        self.sent.append((email, reset_link))
        return True


@pytest.fixture
def settings(tmp_path):
    return dataclasses.replace(get_settings(), file_storage_root=str(tmp_path / "files"))


@pytest.fixture
def email_outbox(settings):
    return RecordingEmailService(settings)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine, settings, email_outbox):
    """HTTP test client with overridden DB, settings and mail dependencies"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_email_service] = lambda: email_outbox
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def roles(db_session):
    """The fixed Admin / Mentor / Intern roles, keyed by name"""
    await seed_roles(db_session)
    result = await db_session.execute(select(Role))
    return {r.name: r for r in result.scalars().all()}


async def create_user(
    db: AsyncSession, role: Role, email: str, first_name: str, last_name: str,
    password: str = DEFAULT_PASSWORD, is_active: bool = True,
) -> User:
    user = User(
        email=email,
        password_hash=AuthService.hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session, roles):
    return await create_user(db_session, roles[RoleName.ADMIN.value], "admin@custor.test", "Ada", "Admin")


@pytest_asyncio.fixture
async def mentor_user(db_session, roles):
    return await create_user(db_session, roles[RoleName.MENTOR.value], "mentor@custor.test", "Max", "Mentor")


@pytest_asyncio.fixture
async def intern_user(db_session, roles):
    return await create_user(db_session, roles[RoleName.INTERN.value], "intern@custor.test", "Ivy", "Intern")


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = AuthService(get_settings()).create_access_token(user.id, user.email, user.role_name)
    return {"Authorization": f"Bearer {token}"}
