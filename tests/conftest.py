"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models carry no
PostgreSQL-only column types, so the real metadata is created directly.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bombily.domain.enums import UserRole
from bombily.infrastructure.database import Base
from bombily.infrastructure.models import CityModel, ShopModel, UserModel

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current


class RecordingPublisher:
    def __init__(self):
        self.events = []

    async def publish(self, event) -> None:
        self.events.append(event)


@dataclass
class World:
    city_id: int
    other_city_id: int
    shop_id: int
    passenger_id: int
    other_passenger_id: int
    homeless_passenger_id: int
    driver_a_id: int
    driver_b_id: int
    far_driver_id: int
    admin_id: int


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def world(session_factory) -> World:
    """Two cities, a shop, passengers, drivers and an admin."""
    async with session_factory() as session:
        kazan = CityModel(name="Kazan")
        samara = CityModel(name="Samara")
        session.add_all([kazan, samara])
        await session.flush()

        shop = ShopModel(name="Corner Bakery", city_id=kazan.id)
        session.add(shop)

        def user(phone, role, city):
            return UserModel(phone=phone, role=role, city_id=city)

        passenger = user("+79000000001", UserRole.PASSENGER, kazan.id)
        other_passenger = user("+79000000002", UserRole.PASSENGER, kazan.id)
        homeless = user("+79000000003", UserRole.PASSENGER, None)
        driver_a = user("+79000000004", UserRole.DRIVER, kazan.id)
        driver_b = user("+79000000005", UserRole.DRIVER, kazan.id)
        far_driver = user("+79000000006", UserRole.DRIVER, samara.id)
        admin = user("+79000000007", UserRole.ADMIN, None)
        session.add_all(
            [passenger, other_passenger, homeless, driver_a, driver_b, far_driver, admin]
        )
        await session.commit()

        return World(
            city_id=kazan.id,
            other_city_id=samara.id,
            shop_id=shop.id,
            passenger_id=passenger.id,
            other_passenger_id=other_passenger.id,
            homeless_passenger_id=homeless.id,
            driver_a_id=driver_a.id,
            driver_b_id=driver_b.id,
            far_driver_id=far_driver.id,
            admin_id=admin.id,
        )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
