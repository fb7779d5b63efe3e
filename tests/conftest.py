# tests/conftest.py

from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.identity import get_current_user
from app.db import crud
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.schemas.user import CurrentUser

from .fakes import FakeRedis

ADMIN = CurrentUser(id="user_admin", email="admin@example.com", role="admin")
MEMBER = CurrentUser(id="user_member", email="member@example.com", role="member")


@pytest.fixture()
async def engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def auth() -> SimpleNamespace:
    """Mutable holder for the user the API sees; tests swap ``auth.user``."""
    return SimpleNamespace(user=ADMIN)


@pytest.fixture()
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
async def client(session_factory, auth, redis):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_current_user():
        return auth.user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_current_user
    app.state.redis = redis

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    app.state.redis = None


@pytest.fixture()
async def board(db):
    """A board with the four default columns; columns keyed by title."""
    b = await crud.create_board_with_default_columns(db, title="Sprint", user_id=ADMIN.id)
    return SimpleNamespace(
        id=b.id,
        columns={c.title: c.id for c in b.columns},
    )
