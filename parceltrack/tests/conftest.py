"""
Centralized Test Configuration.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from parceltrack.app.main import app
from parceltrack.app.db.session import get_db, Base
from parceltrack.app.core.jwt import create_access_token
from parceltrack.app.models.enums import UserRole
from parceltrack.app.models.zone import Zone
from parceltrack.app.models.delivery_person import DeliveryPerson
from parceltrack.app.models.sender_client import SenderClient
from parceltrack.app.models.recipient import Recipient
from parceltrack.app.models.product import Product
from parceltrack.app.models.parcel_enums import ParcelPriority
from parceltrack.app.schemas.parcel import ParcelCreate
from parceltrack.app.services.parcel_lifecycle import ParcelLifecycleService

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, bound to the test's event loop."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing, with the database dependency overridden."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def directory(db_session):
    """
    Directory entities shared by most tests.

    Two zones (North has two couriers), three couriers (one without a zone),
    two senders, two recipients (one without an email) and two products.
    """
    db_session.add_all([
        Zone(id="zone-north", name="North", postal_code="10000"),
        Zone(id="zone-south", name="South", postal_code="20000"),
    ])
    await db_session.flush()

    db_session.add_all([
        DeliveryPerson(id="dp-amine", first_name="Amine", last_name="Haddad",
                       phone="0600000001", vehicle="Van", assigned_zone_id="zone-north"),
        DeliveryPerson(id="dp-sara", first_name="Sara", last_name="Idrissi",
                       phone="0600000002", vehicle="Bike", assigned_zone_id="zone-north"),
        DeliveryPerson(id="dp-youssef", first_name="Youssef", last_name="Tazi",
                       phone="0600000003", vehicle="Scooter", assigned_zone_id=None),
        SenderClient(id="sender-1", first_name="Nadia", last_name="Benali", email="nadia@boutique.ma",
                     phone="0611111111", address="1 Market Street"),
        SenderClient(id="sender-2", first_name="Karim", last_name="Fassi", email="karim@boutique.ma",
                     phone="0622222222", address="2 Harbour Road"),
        Recipient(id="recipient-1", first_name="Omar", last_name="Alaoui", email="Omar.Alaoui@Mail.ma",
                  phone="0633333333", address="3 Palm Avenue"),
        Recipient(id="recipient-2", first_name="Layla", last_name="Amrani", email=None,
                  phone="0644444444", address="4 Cedar Lane"),
        Product(id="product-laptop", name="Laptop", category="Electronics",
                weight=Decimal("2.10"), price=Decimal("899.99")),
        Product(id="product-book", name="Book", category="Books",
                weight=Decimal("0.50"), price=Decimal("12.50")),
    ])
    await db_session.commit()

    return SimpleNamespace(
        zone_north="zone-north",
        zone_south="zone-south",
        amine="dp-amine",
        sara="dp-sara",
        youssef="dp-youssef",
        sender="sender-1",
        other_sender="sender-2",
        recipient="recipient-1",
        recipient_without_email="recipient-2",
        laptop="product-laptop",
        book="product-book",
    )


@pytest.fixture
def make_parcel(db_session, directory):
    """Create a parcel through the lifecycle service; keyword arguments override defaults."""
    async def _make(**overrides):
        data = {
            "description": "Books and stationery",
            "weight": Decimal("2.50"),
            "priority": ParcelPriority.NORMAL,
            "destination_city": "Casablanca",
            "sender_client_id": directory.sender,
            "recipient_id": directory.recipient,
            "products": [{"product_id": directory.book, "quantity": 1, "price": "12.50"}],
        }
        data.update(overrides)
        return await ParcelLifecycleService.create(db_session, ParcelCreate(**data))

    return _make


@pytest.fixture
def auth_headers():
    """Build a bearer header for a role, with optional directory link claims."""
    def _headers(role: UserRole, **claims) -> dict:
        token = create_access_token(data={
            "sub": f"{role.value.lower()}.user",
            "user_id": f"user-{role.value.lower()}",
            "role": role.value,
            **claims,
        })
        return {"Authorization": f"Bearer {token}"}

    return _headers
