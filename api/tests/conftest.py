import os

# Must be set before app.config is imported
os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite://')

from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.main import app, lifespan
from app.db.database import Base, get_db, utc_today
from app.models.points import PointCategory, PointsDay
from app.models.revenue import AdImpression, AdType
from app.models.user import User
from app.services.balance_service import BalanceService

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = 'sqlite+aiosqlite://'


@pytest.fixture
async def engine():
    """Fresh schema per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Database session for direct service calls and queries in tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(session_factory):
    """Async HTTP client running the app lifespan against the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url='http://test') as ac:
            yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def past_day() -> date:
    """A day that has already ended, so it can be settled."""
    return utc_today() - timedelta(days=1)


@pytest.fixture
def make_user(db_session):
    """Create a committed user, optionally with money already on the balance."""
    counter = {'n': 0}

    async def _make(name: str | None = None, available: str | None = None, gifts: str | None = None) -> User:
        counter['n'] += 1
        handle = name or f'user{counter["n"]}'
        user = User(name=handle.title(), handle=handle)
        db_session.add(user)
        await db_session.flush()

        balance = await BalanceService(db_session).get_or_create(user.id)
        if available is not None:
            balance.available_balance = Decimal(available)
            balance.lifetime_earnings = Decimal(available)
        if gifts is not None:
            balance.gift_balance = Decimal(gifts)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def seed_points(db_session):
    """Write a finished day of points directly, bypassing today-only accrual."""

    async def _seed(user_id: int, day: date, **categories: str) -> PointsDay:
        values = {c.value: Decimal(categories.get(c.value, '0')) for c in PointCategory}
        points_day = PointsDay(
            user_id=user_id,
            date=day,
            total_points=sum(values.values(), Decimal('0')),
            **values,
        )
        db_session.add(points_day)
        await db_session.commit()
        return points_day

    return _seed


@pytest.fixture
def seed_impressions(db_session):
    """Bulk insert ad impressions at midday of a given day."""

    async def _seed(day: date, count: int, ad_type: AdType = AdType.IN_FEED) -> None:
        created_at = datetime.combine(day, time(12, 0))
        await db_session.execute(
            insert(AdImpression),
            [{'ad_type': ad_type.value, 'created_at': created_at} for _ in range(count)],
        )
        await db_session.commit()

    return _seed
