"""Test fixtures: in-memory SQLite per test, a fresh broadcast registry,
and HTTP clients logged in as guest, customer or admin.

The app's lifespan is not run by ASGITransport, so the fixtures create
the tables and put the registry on ``app.state`` themselves.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENV_MODE"] = "development"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EXCEL_EXPORT_ENABLED"] = "false"

from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession, create_async_engine

from oldrao.core.security import hash_password
from oldrao.database import Base, engine_options, get_db
from oldrao.main import app
from oldrao.models import MenuCategory, MenuItem, User, UserRole
from oldrao.services.events import BaseSubscriber, BroadcastRegistry, SubscriberClosed


TEST_DB_URL = "sqlite+aiosqlite://"


class FakeSubscriber(BaseSubscriber):
    """Records every event it is sent instead of writing to a socket."""

    def __init__(self, name: str = "fake"):
        self.name = name
        self.events: list[tuple[str, Any]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event, payload):
        if self._closed:
            raise SubscriberClosed("closed")
        self.events.append((event, payload))

    def close(self):
        self._closed = True

    def __repr__(self):
        return f"<FakeSubscriber {self.name}>"


@pytest.fixture
def make_subscriber():
    return FakeSubscriber


@pytest.fixture
def broadcaster():
    registry = BroadcastRegistry()
    yield registry
    registry.close()


@pytest_asyncio.fixture()
async def session_maker():
    engine = create_async_engine(TEST_DB_URL, **engine_options(TEST_DB_URL))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture()
async def client_factory(session_maker, broadcaster):
    """Build independent clients (separate cookie jars) against one app."""

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.broadcaster = broadcaster

    clients = []

    def factory() -> AsyncClient:
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")
        clients.append(ac)
        return ac

    yield factory

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(client_factory):
    """Anonymous (guest) client."""
    return client_factory()


async def _create_user(db_session, email: str, password: str, role: UserRole, name: str) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password, rounds=4),
        role=role,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture()
async def admin_user(db_session):
    return await _create_user(db_session, "admin@oldrao.test", "kitchen-boss", UserRole.ADMIN, "Head Chef")


@pytest_asyncio.fixture()
async def customer_user(db_session):
    return await _create_user(db_session, "asha@example.com", "masala-dosa", UserRole.CUSTOMER, "Asha Rao")


@pytest_asyncio.fixture()
async def admin_client(client_factory, admin_user):
    ac = client_factory()
    resp = await ac.post("/api/auth/login", json={"email": "admin@oldrao.test", "password": "kitchen-boss"})
    assert resp.status_code == 200
    return ac


@pytest_asyncio.fixture()
async def customer_client(client_factory, customer_user):
    ac = client_factory()
    resp = await ac.post("/api/auth/login", json={"email": "asha@example.com", "password": "masala-dosa"})
    assert resp.status_code == 200
    return ac


@pytest_asyncio.fixture()
async def menu_items(db_session):
    """A small menu: samosa 40.0, thali 180.0, lassi 60.0."""
    items = [
        MenuItem(name="Samosa", price=40.0, category=MenuCategory.SNACKS),
        MenuItem(name="Veg Thali", price=180.0, category=MenuCategory.MAIN),
        MenuItem(name="Mango Lassi", price=60.0, category=MenuCategory.DRINKS, img="/images/lassi.jpg"),
    ]
    db_session.add_all(items)
    await db_session.commit()
    for item in items:
        await db_session.refresh(item)
    return {item.name: item for item in items}


@pytest.fixture
def checkout_payload(menu_items):
    return {
        "items": [
            {"id": menu_items["Samosa"].id, "qty": 2},
            {"id": menu_items["Veg Thali"].id, "qty": 1},
        ],
        "name": "Ravi Kumar",
        "phone": "98450 12345",
        "address": "12 MG Road, Bengaluru",
        "payment": "cash",
    }
