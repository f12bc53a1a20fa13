"""Service test fixtures — async DB, fake postal-code lookup, directory service, API client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_user_service dependency overridden to use the test service
    - db_manager patched so readiness probes see the test engine
    - FakeAddressLookup records every call: tests assert when the network would be hit

Design Decisions:
    - SQLite in-memory with StaticPool: fast, no external dependency; all sessions share
      one connection, so DB-touching batch work runs on a pool of size 1
    - Fake lookup at the AddressLookup protocol boundary; the real ViaCepClient is
      covered separately against httpx.MockTransport
"""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from user_directory.api.dependencies import get_user_service
from user_directory.core.postal_code import parse_postal_code
from user_directory.core.user_records import AddressData
from user_directory.db.base import Base
from user_directory.infrastructure.database import DatabaseSessionManager
from user_directory.infrastructure.task_pool import IOTaskPool
from user_directory.infrastructure.user_repository import user_repository_scope
from user_directory.services.user_directory import UserDirectoryService
import user_directory.infrastructure.database as db_module
import user_directory.models  # noqa: F401
from user_directory.main import app

SAO_PAULO = AddressData(
    postal_code="01310100",
    street="Avenida Paulista",
    neighborhood="Bela Vista",
    city="São Paulo",
    state="SP",
    complement="de 612 a 1510 - lado par",
)
RIO = AddressData(
    postal_code="20040002",
    street="Rua da Assembleia",
    neighborhood="Centro",
    city="Rio de Janeiro",
    state="RJ",
)
# Resolvable but incomplete: the provider knows the code but not the city
PARTIAL = AddressData(postal_code="70000000", state="DF")


class FakeAddressLookup:
    """In-memory AddressLookup with call recording and optional per-code delays."""

    def __init__(self, addresses=None, delays=None):
        self.addresses = {a.postal_code: a for a in (addresses or [])}
        self.delays = delays or {}
        self.calls: list[str] = []

    async def lookup(self, raw_postal_code: str) -> AddressData | None:
        code = parse_postal_code(raw_postal_code)
        if code is None:
            return None
        self.calls.append(code)
        delay = self.delays.get(code)
        if delay:
            await asyncio.sleep(delay)
        return self.addresses.get(code)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def test_db_manager(test_engine, test_session_factory):
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
def make_lookup():
    """Factory for lookups with custom delays (known codes: SAO_PAULO, RIO, PARTIAL)."""
    def _make(delays=None):
        return FakeAddressLookup([SAO_PAULO, RIO, PARTIAL], delays)
    return _make


@pytest.fixture
def address_lookup(make_lookup):
    return make_lookup()


@pytest.fixture
def service(test_db_manager, address_lookup):
    return UserDirectoryService(
        repository_scope=user_repository_scope(test_db_manager),
        address_lookup=address_lookup,
        task_pool=IOTaskPool(max_concurrency=1),
    )


@pytest.fixture
async def client(service, test_db_manager):
    """FastAPI test client with the directory service overridden."""
    app.dependency_overrides[get_user_service] = lambda: service

    original_manager = db_module.db_manager
    db_module.db_manager = test_db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
