# backend/modules/layouts/tests/conftest.py

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.database import Base, enable_sqlite_foreign_keys, get_db
from core.record_store import SQLAlchemyRecordStore
from ..models.layout_models import Room, Table
from ..services.default_enforcer import DefaultExclusivityEnforcer
from ..services.layout_repository import LayoutRepository

SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test"""
    test_engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine.sync_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session):
    return SQLAlchemyRecordStore(db_session)


@pytest.fixture
def repository(store):
    return LayoutRepository(store, DefaultExclusivityEnforcer(store, retry_delay=0))


@pytest_asyncio.fixture
async def async_client(session_factory):
    """Async test client; every request gets its own session on the test database"""
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def sample_room(store):
    async with store.transaction():
        return await store.insert(Room, {"name": "Main Dining"})


@pytest_asyncio.fixture
async def sample_tables(store, sample_room):
    async with store.transaction():
        first = await store.insert(
            Table,
            {"name": "T1", "room_id": sample_room.id, "x": 10, "y": 20, "width": 80, "height": 80},
        )
        second = await store.insert(
            Table,
            {"name": "T2", "room_id": sample_room.id, "x": 200, "y": 40, "width": 100, "height": 60},
        )
    return [first, second]
