"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 3 cities (one not yet active)
  - 2 shops
  - 1 admin, 3 drivers, 4 passengers (one without a confirmed city)
  - 6 orders across the lifecycle (pending, accepted, arrived, completed,
    cancelled and one scheduled for tomorrow)
  - 1 pending city proposal from the passenger without a city
"""

import asyncio
from datetime import timedelta

from sqlalchemy import text

from bombily.config import settings
from bombily.domain.clock import SystemClock
from bombily.domain.enums import OrderStatus, OrderType, ScheduleDay, UserRole
from bombily.domain.phones import ensure_e164
from bombily.domain.scheduling import resolve
from bombily.infrastructure.database import async_session_factory, engine
from bombily.infrastructure.models import (
    CityModel,
    CityProposalModel,
    OrderModel,
    ShopModel,
    UserModel,
)


CITIES = [
    {"name": "Kazan", "is_active": True},
    {"name": "Samara", "is_active": True},
    {"name": "Tver", "is_active": False},
]

SHOPS = [
    {"name": "Corner Bakery", "description": "Bread and pastries", "city": 0},
    {"name": "Fresh Market", "description": "Groceries", "city": 0},
]

USERS = [
    {"phone": "8 (900) 000-00-01", "role": UserRole.ADMIN, "name": "Admin", "city": None},
    {
        "phone": "+7 900 111-11-11", "role": UserRole.DRIVER, "name": "Ilya", "city": 0,
        "vehicle_model": "Lada Vesta", "vehicle_color": "white", "vehicle_plate": "A123BC116",
        "sbp_recipient_name": "Ilya K.", "sbp_phone": "+79001111111", "sbp_bank": "Sber",
    },
    {
        "phone": "+7 900 222-22-22", "role": UserRole.DRIVER, "name": "Rustam", "city": 0,
        "vehicle_model": "Kia Rio", "vehicle_color": "grey", "vehicle_plate": "B456DE116",
        "sbp_recipient_name": "Rustam G.", "sbp_phone": "+79002222222", "sbp_bank": "Tinkoff",
    },
    {
        "phone": "+7 900 333-33-33", "role": UserRole.DRIVER, "name": "Oleg", "city": 1,
        "vehicle_model": "GAZelle", "vehicle_color": "blue", "vehicle_plate": "C789FG163",
        "sbp_recipient_name": "Oleg S.", "sbp_phone": "+79003333333", "sbp_bank": "VTB",
    },
    {"phone": "89004444444", "role": UserRole.PASSENGER, "name": "Anna", "city": 0},
    {"phone": "89005555555", "role": UserRole.PASSENGER, "name": "Marat", "city": 0},
    {"phone": "89006666666", "role": UserRole.PASSENGER, "name": "Olga", "city": 1},
    {"phone": "89007777777", "role": UserRole.PASSENGER, "name": "Pavel", "city": None},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Cities & shops ────────────────────────────────────────────
        cities = [CityModel(**c) for c in CITIES]
        session.add_all(cities)
        await session.flush()
        shops = [
            ShopModel(
                name=s["name"], description=s["description"],
                city_id=cities[s["city"]].id,
            )
            for s in SHOPS
        ]
        session.add_all(shops)
        await session.flush()
        print(f"  Created {len(cities)} cities, {len(shops)} shops")

        # ── Users ─────────────────────────────────────────────────────
        users = []
        for u in USERS:
            fields = {k: v for k, v in u.items() if k not in ("phone", "city")}
            m = UserModel(
                phone=ensure_e164(u["phone"]),
                city_id=cities[u["city"]].id if u["city"] is not None else None,
                **fields,
            )
            session.add(m)
            users.append(m)
        await session.flush()
        print(f"  Created {len(users)} users")

        # ── Orders ────────────────────────────────────────────────────
        admin, ilya, rustam, oleg, anna, marat, olga, pavel = users
        now = SystemClock(settings.civil_timezone).now()
        tomorrow_nine = resolve(
            ScheduleDay.TOMORROW, 9, 30, now,
            timedelta(minutes=settings.schedule_lead_time_minutes),
        )
        orders_data = [
            {"user": anna, "driver": None, "city": cities[0], "type": OrderType.TAXI,
             "from": "Bauman St 1", "to": "Railway station", "status": OrderStatus.PENDING},
            {"user": marat, "driver": None, "city": cities[0], "type": OrderType.CARGO,
             "from": "Pushkin St 10", "to": "Garden Ring 5", "status": OrderStatus.PENDING,
             "scheduled": tomorrow_nine, "comment": "Fridge, 2 loaders"},
            {"user": anna, "driver": ilya, "city": cities[0], "type": OrderType.DELIVERY,
             "shop": shops[0], "from": "Corner Bakery", "to": "Bauman St 1",
             "status": OrderStatus.ACCEPTED},
            {"user": marat, "driver": rustam, "city": cities[0], "type": OrderType.TAXI,
             "from": "Airport", "to": "Kremlin", "status": OrderStatus.ARRIVED},
            {"user": olga, "driver": oleg, "city": cities[1], "type": OrderType.TAXI,
             "from": "Volga embankment", "to": "Central market",
             "status": OrderStatus.COMPLETED, "confirmed": True},
            {"user": olga, "driver": None, "city": cities[1], "type": OrderType.TAXI,
             "from": "Theatre", "to": "Home", "status": OrderStatus.CANCELLED},
        ]
        for o in orders_data:
            session.add(
                OrderModel(
                    user_id=o["user"].id,
                    driver_id=o["driver"].id if o["driver"] else None,
                    city_id=o["city"].id,
                    shop_id=o["shop"].id if o.get("shop") else None,
                    type=o["type"],
                    from_address=o["from"],
                    to_address=o["to"],
                    comment=o.get("comment"),
                    scheduled_time=o.get("scheduled"),
                    status=o["status"],
                    passenger_confirmed=o.get("confirmed", False),
                )
            )
        await session.flush()
        print(f"  Created {len(orders_data)} orders")

        # ── City proposals ────────────────────────────────────────────
        session.add(CityProposalModel(user_id=pavel.id, proposed_name="Ulyanovsk"))
        print("  Created 1 pending city proposal")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
