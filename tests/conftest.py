"""Fixtures compartidos: settings de test, sqlite en memoria y cliente HTTP."""

from __future__ import annotations

import os

# antes de importar app.*: Settings se instancia al importar
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.api import deps
from app.core.db import build_engine, create_all, get_db
from app.main import app
from app.services import otp_fallback


@pytest.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite://", poolclass=StaticPool,
                       connect_args={"check_same_thread": False})
    await create_all(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    deps.attempt_limiter.clear()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    deps.attempt_limiter.clear()


def current_code(secret: str) -> str:
    """Código TOTP vigente calculado por fuera del motor."""
    return otp_fallback.totp_at(secret)


async def register_and_login(client: httpx.AsyncClient, email: str = "ana@seengroup.com",
                             password: str = "Str0ng!Passw0rd") -> dict[str, str]:
    r = await client.post("/auth/register", json={"full_name": "Ana Admin", "email": email, "password": password})
    assert r.status_code == 201, r.text
    r = await client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
