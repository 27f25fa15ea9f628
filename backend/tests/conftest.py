"""
Pytest fixtures for the utsalapp backend tests.

Provides in-memory and SQLite-backed entity stores with a deterministic
clock, sample stores and callers, and an API test client.
"""
import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from utsalapp.database import Base, enable_sqlite_foreign_keys, get_storage, init_db
from utsalapp.main import app
from utsalapp.schemas import Caller, ImageIn, Role, SalePostCreate, StoreCreate
from utsalapp.storage import MemoryStorage, SqlStorage

NOW = datetime(2025, 6, 1, 12, 0, 0)


class FakeClock:
    """Clock that advances one second per reading, so creation times are strictly ordered."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def post_data(**overrides) -> SalePostCreate:
    """Valid sale post input; override any field."""
    data = {
        "title": "Rauður kjóll",
        "description": "Sumarkjólar með afslætti",
        "category": "fatnad",
        "price_original": 10000,
        "price_sale": 6000,
        "starts_at": NOW - timedelta(days=1),
        "ends_at": NOW + timedelta(days=7),
        "images": [ImageIn(url="/uploads/kjoll.webp", alt="Kjóll")],
    }
    data.update(overrides)
    return SalePostCreate(**data)


def caller_for(store, role: Role = Role.store) -> Caller:
    return Caller(user_id=store.owner_user_id, role=role, store_id=store.id)


async def orphan_post(storage, **overrides):
    """Write a post whose store does not exist, straight through the memory store."""
    fields = post_data(**overrides).model_dump(exclude={"images", "store_id"})
    return await storage.create_sale_post({**fields, "store_id": "deleted-store"})


@pytest.fixture
def clock():
    return FakeClock(NOW - timedelta(days=30))


@pytest.fixture
def storage(clock):
    return MemoryStorage(clock=clock)


@pytest.fixture
def sql_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sql_storage(sql_engine, clock):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=sql_engine)
    return SqlStorage(factory, clock=clock)


async def _make_store(storage, email: str, name: str):
    user = await storage.create_user(email, "not-a-real-hash", Role.store)
    return await storage.create_store(StoreCreate(name=name, owner_user_id=user.id))


@pytest.fixture
async def store_a(storage):
    return await _make_store(storage, "litabudin@example.is", "LitaBúðin")


@pytest.fixture
async def store_b(storage):
    return await _make_store(storage, "gaedaskor@example.is", "GæðaSkór")


@pytest.fixture
async def admin(storage):
    user = await storage.create_user("admin@utsalapp.is", "not-a-real-hash", Role.admin)
    return Caller(user_id=user.id, role=Role.admin)


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email: str, store_name: str, password: str = "store123") -> dict:
    """Register a store through the API and return the response body."""
    response = client.post("/api/v1/auth/register-store", json={
        "email": email,
        "password": password,
        "store_name": store_name,
    })
    assert response.status_code == 200, response.text
    return response.json()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {"Authorization": f"Bearer {token}"}
