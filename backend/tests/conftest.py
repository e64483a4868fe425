"""Shared fixtures: in-memory SQLite database, services and an HTTP client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PASSWORD_HASH_SCHEME", "pbkdf2_sha256")
os.environ.setdefault("ENVIRONMENT", "test")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from collabhub.config import Settings
from collabhub.db.base import Base
from collabhub.db.session import build_session_factory, get_db_session
from collabhub.main import create_app
from collabhub.models import User
from collabhub.services import AuthService, ContactService, CredentialService, ProjectService

PASSWORD = "Secret123"


@pytest.fixture
def settings():
    """Settings for tests; override fields per test with ``model_copy``."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        password_hash_scheme="pbkdf2_sha256",
        environment="test",
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def credentials(settings):
    return CredentialService(settings)


@pytest.fixture
def contact_service(db, settings):
    return ContactService(db, settings)


@pytest.fixture
def project_service(db, settings):
    return ProjectService(db, settings)


@pytest.fixture
def auth_service(db, credentials):
    return AuthService(db, credentials)


@pytest.fixture
def make_user(db, credentials):
    """Factory creating committed users."""

    async def _make_user(
        login: str,
        name: str | None = None,
        email: str | None = None,
        is_active: bool = True,
    ) -> User:
        user = User(
            login=login,
            name=name or login.capitalize(),
            email=email,
            password_hash=credentials.hash_password(PASSWORD),
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user("alice")


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user("bob")


@pytest_asyncio.fixture
async def carol(make_user):
    return await make_user("carol")


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app, with requests sharing the test database."""
    app = create_app()

    async def _get_test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _get_test_session

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(credentials):
    """Build bearer headers for a user."""

    def _auth_headers(user: User) -> dict[str, str]:
        tokens = credentials.issue(user)
        return {"Authorization": f"Bearer {tokens.access_token}"}

    return _auth_headers
