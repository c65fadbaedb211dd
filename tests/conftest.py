from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.auth.jwt import create_access_token
from src.core.auth.models import User, UserRole
from src.core.database.base import Base
from src.core.database import get_db
from src.main import app

# In-memory SQLite; aiosqlite shares one connection for :memory: URLs
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_async_session = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    async with test_async_session() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def super_admin(db_session: AsyncSession) -> User:
    """SuperAdmin operator without a password (token-only)."""
    user = User(
        email="admin@acmeassets.com",
        full_name="Asset Admin",
        role=UserRole.SUPER_ADMIN.value,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(super_admin: User) -> dict[str, str]:
    token = create_access_token(super_admin.id, super_admin.role)
    return {"Authorization": f"Bearer {token}"}


# --- Data factories (raw ORM, no stock bookkeeping) ---


@pytest.fixture
def make_warehouse(db_session: AsyncSession):
    from src.modules.warehouses.models import Warehouse

    async def _make(title: str = "Main Store", stock_qty: int = 10) -> Warehouse:
        warehouse = Warehouse(title=title, location="HQ", stock_qty=stock_qty)
        db_session.add(warehouse)
        await db_session.commit()
        return warehouse

    return _make


@pytest.fixture
def make_person(db_session: AsyncSession):
    from src.modules.people.models import Person, PersonStatus

    async def _make(
        title: str = "Jane Doe",
        status: PersonStatus = PersonStatus.ACTIVE,
        stock_qty: int = 0,
    ) -> Person:
        person = Person(
            title=title,
            email=f"{title.lower().replace(' ', '.')}@acmeassets.com",
            department="Operations",
            status=status.value,
            stock_qty=stock_qty,
        )
        db_session.add(person)
        await db_session.commit()
        return person

    return _make


@pytest.fixture
def make_item(db_session: AsyncSession):
    from src.modules.items.models import Category, Item, LocationType

    async def _make(
        warehouse_id: int | None,
        title: str = "Laptop",
        person_id: int | None = None,
        location_type: LocationType | None = None,
        quantity: int = 1,
    ) -> Item:
        category = Category(title=f"{title} category {warehouse_id}-{person_id}")
        db_session.add(category)
        await db_session.flush()
        if location_type is None:
            location_type = LocationType.PERSON if person_id else LocationType.WAREHOUSE
        item = Item(
            title=title,
            category_id=category.id,
            warehouse_id=warehouse_id,
            assigned_to_person_id=person_id,
            current_location_type=location_type.value,
            quantity=quantity,
            serial_number=f"SN-{title.upper()}",
        )
        db_session.add(item)
        await db_session.commit()
        return item

    return _make
