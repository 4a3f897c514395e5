"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import CityModel, CityProposalModel, OrderModel, ShopModel, UserModel
from bombily.domain.entities import Order
from bombily.domain.enums import OrderStatus, OrderType, ProposalStatus
from bombily.domain.lifecycle import OrderChange
from bombily.domain.phones import ensure_e164


def to_entity(model: OrderModel) -> Order:
    return Order(
        id=model.id,
        user_id=model.user_id,
        driver_id=model.driver_id,
        city_id=model.city_id,
        shop_id=model.shop_id,
        type=OrderType(model.type),
        from_address=model.from_address,
        to_address=model.to_address,
        comment=model.comment,
        scheduled_time=model.scheduled_time,
        status=OrderStatus(model.status),
        passenger_confirmed=bool(model.passenger_confirmed),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class OrderRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_order(
        self,
        *,
        user_id: int,
        city_id: int,
        type: OrderType,
        from_address: str,
        to_address: str,
        comment: str | None = None,
        shop_id: int | None = None,
        scheduled_time: datetime | None = None,
    ) -> OrderModel:
        order = OrderModel(
            user_id=user_id,
            city_id=city_id,
            shop_id=shop_id,
            type=type,
            from_address=from_address,
            to_address=to_address,
            comment=comment,
            scheduled_time=scheduled_time,
            status=OrderStatus.PENDING,
            passenger_confirmed=False,
        )
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def get_by_id(self, order_id: int) -> Optional[OrderModel]:
        return await self.session.get(OrderModel, order_id)

    async def apply_change(
        self, change: OrderChange, updated_at: datetime
    ) -> Optional[OrderModel]:
        """Conditional update keyed on the expected current status.

        Returns ``None`` when no row matched, i.e. somebody else moved the
        order first.
        """
        result = await self.session.execute(
            update(OrderModel)
            .where(
                OrderModel.id == change.order_id,
                OrderModel.status == change.expected_status,
            )
            .values(**change.values(), updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.session.get(
            OrderModel, change.order_id, populate_existing=True
        )

    async def delete(self, order: OrderModel) -> None:
        await self.session.delete(order)
        await self.session.flush()

    async def list_available(self, city_id: int) -> list[OrderModel]:
        """Pending, unassigned orders in a city -- the driver's feed."""
        result = await self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.status == OrderStatus.PENDING,
                OrderModel.driver_id.is_(None),
                OrderModel.city_id == city_id,
            )
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_requester(
        self, user_id: int, statuses: Iterable[OrderStatus]
    ) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.user_id == user_id,
                OrderModel.status.in_(list(statuses)),
            )
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_driver(
        self, driver_id: int, statuses: Iterable[OrderStatus]
    ) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.driver_id == driver_id,
                OrderModel.status.in_(list(statuses)),
            )
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_recent(self, limit: int = 100) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_phone(self, phone: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.phone == ensure_e164(phone))
        )
        return result.scalar_one_or_none()


class CityRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, city_id: int) -> Optional[CityModel]:
        return await self.session.get(CityModel, city_id)

    async def get_by_name(self, name: str) -> Optional[CityModel]:
        result = await self.session.execute(
            select(CityModel).where(CityModel.name == name)
        )
        return result.scalar_one_or_none()

    async def get_active(self) -> list[CityModel]:
        result = await self.session.execute(
            select(CityModel)
            .where(CityModel.is_active.is_(True))
            .order_by(CityModel.name)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[CityModel]:
        result = await self.session.execute(select(CityModel).order_by(CityModel.name))
        return list(result.scalars().all())

    async def create(self, name: str, is_active: bool = True) -> CityModel:
        city = CityModel(name=name, is_active=is_active)
        self.session.add(city)
        await self.session.flush()
        await self.session.refresh(city)
        return city

    async def is_referenced(self, city_id: int) -> bool:
        """True while any user, shop or order still points at the city."""
        for model in (UserModel, ShopModel, OrderModel):
            result = await self.session.execute(
                select(model.id).where(model.city_id == city_id).limit(1)
            )
            if result.first() is not None:
                return True
        return False

    async def delete(self, city: CityModel) -> None:
        await self.session.delete(city)
        await self.session.flush()


class ShopRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, shop_id: int) -> Optional[ShopModel]:
        return await self.session.get(ShopModel, shop_id)

    async def list_for_city(self, city_id: int) -> list[ShopModel]:
        result = await self.session.execute(
            select(ShopModel)
            .where(ShopModel.city_id == city_id)
            .order_by(ShopModel.name)
        )
        return list(result.scalars().all())

    async def create(
        self, *, name: str, city_id: int, description: str | None = None
    ) -> ShopModel:
        shop = ShopModel(name=name, city_id=city_id, description=description)
        self.session.add(shop)
        await self.session.flush()
        await self.session.refresh(shop)
        return shop

    async def has_orders(self, shop_id: int) -> bool:
        result = await self.session.execute(
            select(OrderModel.id).where(OrderModel.shop_id == shop_id).limit(1)
        )
        return result.first() is not None

    async def delete(self, shop: ShopModel) -> None:
        await self.session.delete(shop)
        await self.session.flush()


class CityProposalRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: int, proposed_name: str) -> CityProposalModel:
        proposal = CityProposalModel(
            user_id=user_id,
            proposed_name=proposed_name,
            status=ProposalStatus.PENDING,
        )
        self.session.add(proposal)
        await self.session.flush()
        await self.session.refresh(proposal)
        return proposal

    async def get_by_id(self, proposal_id: int) -> Optional[CityProposalModel]:
        return await self.session.get(CityProposalModel, proposal_id)

    async def list_pending(self) -> list[CityProposalModel]:
        result = await self.session.execute(
            select(CityProposalModel)
            .where(CityProposalModel.status == ProposalStatus.PENDING)
            .order_by(CityProposalModel.created_at.desc(), CityProposalModel.id.desc())
        )
        return list(result.scalars().all())
