"""
Shared fixtures: a throwaway SQLite database per test (aiosqlite), sessions
bound to it and an httpx client talking to the FastAPI app in-process.
"""
import os

# Must be set before db.database builds its module-level engine.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient

from core.config import settings
from db.database import Base, get_async_session, load_models, make_engine, make_session_maker
from db.department import Department
from db.inventory.item import InventoryItem


@pytest.fixture
async def engine(tmp_path):
    load_models()
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'stock.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture(autouse=True)
def _no_retry_backoff(monkeypatch):
    monkeypatch.setattr(settings, "transfer_retry_backoff", 0)


@pytest.fixture
def make_department(db):
    async def _make(code, name=None, **kwargs):
        department = Department(code=code, name=name or code.replace(":", " ").title(), **kwargs)
        db.add(department)
        await db.commit()
        return department.id

    return _make


@pytest.fixture
def make_item(db):
    async def _make(sku, category="food", quantity=0, name=None):
        item = InventoryItem(sku=sku, name=name or sku, category=category, quantity=quantity)
        db.add(item)
        await db.commit()
        return item.id

    return _make


@pytest.fixture
async def client(session_maker):
    from main import app

    async def _override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
