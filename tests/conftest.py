import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.database import get_session_factory
from main import app
from models.base import Base
from services.realtime import RealtimeTransport

from helpers import add_idea, add_user


def build_engine(path, immediate: bool = False):
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)

    # pysqlite's implicit transactions break SAVEPOINT; take over BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        # IMMEDIATE takes the write lock up front so concurrent writers queue on
        # busy_timeout instead of failing a read-to-write lock upgrade
        conn.exec_driver_sql("BEGIN IMMEDIATE" if immediate else "BEGIN")

    return engine


async def create_schema(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(tmp_path / "test.db")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def writer_factory(tmp_path):
    """Sessions for tests that gather concurrent writers, each on its own connection."""
    engine = build_engine(tmp_path / "writers.db", immediate=True)
    await create_schema(engine)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def transport():
    return RealtimeTransport()


@pytest.fixture
def make_user(session_factory):
    async def factory(name):
        return await add_user(session_factory, name)
    return factory


@pytest.fixture
def make_idea(session_factory):
    async def factory(owner, name, active=True):
        return await add_idea(session_factory, owner, name, active)
    return factory


@pytest.fixture
async def client(session_factory, transport):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    original_transport = app.state.transport
    app.state.transport = transport
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.state.transport = original_transport
    app.dependency_overrides.clear()


@pytest.fixture
def sync_env(tmp_path):
    """
    Database and app wiring for Starlette TestClient tests, which run the app
    in their own event loop; the schema is built with asyncio.run.
    """
    engine = build_engine(tmp_path / "ws.db")
    asyncio.run(create_schema(engine))
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    app.dependency_overrides[get_session_factory] = lambda: factory
    original_transport = app.state.transport
    app.state.transport = RealtimeTransport()
    yield factory
    app.state.transport = original_transport
    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())
