import os
from collections.abc import AsyncGenerator
from typing import Any, Dict, List, Optional

# Must be set before the app (and its engine) is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.services.imports.duplicates import ExistingRecord
from app.services.imports.session import ImportSessionRegistry, get_session_registry


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_TENANT = "tenant-test"
HEADERS = {"X-Tenant-ID": TEST_TENANT, "X-User-Name": "tester"}


class FakeRecordStore:
    """In-memory record store; phones listed in fail_phones raise on write."""

    def __init__(self, records: Optional[List[ExistingRecord]] = None):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.fail_phones = set()
        self.calls: List[tuple] = []
        self._next_id = 1
        for record in records or []:
            self.records[record.id] = {
                "phone": record.phone,
                "name": record.name,
                "email": record.email,
                "address": record.address,
                "birthday": record.birthday,
                "source": record.source,
                "note": record.note,
                "tags": list(record.tags),
            }

    async def fetch_existing(self, tenant_id: str = TEST_TENANT) -> List[ExistingRecord]:
        return [ExistingRecord.from_fields(record_id, fields) for record_id, fields in self.records.items()]

    async def create_record(self, fields: Dict[str, Any]) -> str:
        self.calls.append(("create", fields.get("phone")))
        if fields.get("phone") in self.fail_phones:
            raise RuntimeError(f"store rejected {fields.get('phone')}")
        record_id = f"rec-{self._next_id}"
        self._next_id += 1
        self.records[record_id] = dict(fields)
        return record_id

    async def update_record(self, record_id: str, patch: Dict[str, Any]) -> None:
        self.calls.append(("update", record_id))
        if record_id not in self.records:
            raise KeyError(record_id)
        if self.records[record_id].get("phone") in self.fail_phones:
            raise TimeoutError("store timed out")
        self.records[record_id].update({k: v for k, v in patch.items() if k != "updated_at"})

    def by_phone(self, phone: str) -> List[Dict[str, Any]]:
        return [fields for fields in self.records.values() if fields.get("phone") == phone]


@pytest.fixture
def fake_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def make_store():
    return FakeRecordStore


@pytest_asyncio.fixture()
async def session_factory():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def registry() -> ImportSessionRegistry:
    return ImportSessionRegistry()


@pytest_asyncio.fixture()
async def async_client(session_factory, registry) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_registry] = lambda: registry
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="http://testserver", transport=transport, headers=HEADERS) as client:
        yield client
    app.dependency_overrides.clear()
