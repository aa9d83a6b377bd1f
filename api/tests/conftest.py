import os
from contextlib import AsyncExitStack
from urllib.parse import parse_qs, urlparse

os.environ.setdefault("QUADRO_SESSION_SECRET", "test-secret-value-123456")
os.environ["QUADRO_SMTP_HOST"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from quadro.api import deps
from quadro.db.base import Base
from quadro.models.user import AppUser
from main import app

PASSWORD = "supersecret"


def create_sqlite_engine(path=None):
    if path is None:
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        # Arquivo: cada sessão abre a sua conexão e as escritas disputam o lock
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{path}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client_session():
    engine = create_sqlite_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[deps.get_db] = override_get_db

    async with AsyncExitStack() as stack:

        async def make_client() -> AsyncClient:
            # Um cliente por usuário: cada um tem o seu cookie de sessão
            return await stack.enter_async_context(
                AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
            )

        yield make_client, TestingSessionLocal

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def client(client_session):
    make_client, _ = client_session
    return await make_client()


@pytest.fixture
def session_factory(client_session):
    _, session_factory = client_session
    return session_factory


@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessões em um SQLite em arquivo, uma conexão por sessão."""
    engine = create_sqlite_engine(tmp_path / "quadro.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def client_factory(client_session):
    make_client, _ = client_session
    return make_client


@pytest.fixture
def signup(client_factory, session_factory):
    """Registra, confirma o email e loga um usuário em um cliente novo."""

    async def _signup(email: str, name: str | None = None) -> tuple[AsyncClient, dict]:
        user_client = await client_factory()
        response = await user_client.post(
            "/api/auth/register",
            json={"email": email, "password": PASSWORD, "name": name},
        )
        assert response.status_code == 201, response.text

        async with session_factory() as session:
            result = await session.execute(select(AppUser).where(AppUser.email == email.lower()))
            token = result.scalar_one().email_verification_token

        verify = await user_client.post("/api/auth/verify-email", json={"token": token})
        assert verify.status_code == 200, verify.text

        login = await user_client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert login.status_code == 200, login.text
        return user_client, login.json()

    return _signup


@pytest.fixture
def sent_invitations(monkeypatch):
    """Captura os emails de convite no lugar do SMTP."""
    outbox: list[dict] = []

    async def fake_send_invitation_email(**kwargs):
        query = parse_qs(urlparse(kwargs["acceptance_url"]).query)
        outbox.append({**kwargs, "token": query["token"][0]})
        return True

    monkeypatch.setattr("quadro.services.invitations.send_invitation_email", fake_send_invitation_email)
    return outbox
