"""
Cities, shops and user city confirmation.

Ordering requires a city confirmed by an administrator, so this is where
a user becomes able to order: either an admin assigns an existing city,
or approves the city the user proposed (which creates it and assigns it
in one step).  Shops are attached to a city and referenced by delivery
orders.

Everything except proposing a city and browsing a city's shops is for
administrators only.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bombily.domain.entities import Actor
from bombily.domain.enums import ProposalStatus
from bombily.domain.errors import (
    CityNotFound,
    DuplicateCity,
    Forbidden,
    ProposalNotFound,
    ResourceInUse,
    ShopNotFound,
    UserNotFound,
)
from bombily.infrastructure.models import (
    CityModel,
    CityProposalModel,
    ShopModel,
    UserModel,
)
from bombily.infrastructure.repositories import (
    CityProposalRepository,
    CityRepository,
    ShopRepository,
    UserRepository,
)
from bombily.services.storage import storage_errors

logger = logging.getLogger(__name__)


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise Forbidden("Administrators only")


class DirectoryService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.cities = CityRepository(session)
        self.shops = ShopRepository(session)
        self.users = UserRepository(session)
        self.proposals = CityProposalRepository(session)

    # ── Cities ────────────────────────────────────────────────────

    async def list_cities(self, actor: Actor) -> list[CityModel]:
        _require_admin(actor)
        with storage_errors("list cities"):
            return await self.cities.list_all()

    async def create_city(
        self, actor: Actor, name: str, is_active: bool = True
    ) -> CityModel:
        _require_admin(actor)
        name = name.strip()
        with storage_errors("create city"):
            await self._ensure_unique(name)
            city = await self.cities.create(name, is_active)
        logger.info("City %d (%s) created by admin %d", city.id, name, actor.user_id)
        return city

    async def update_city(
        self,
        actor: Actor,
        city_id: int,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> CityModel:
        _require_admin(actor)
        with storage_errors("update city"):
            city = await self._get_city(city_id)
            if name is not None and name.strip() != city.name:
                await self._ensure_unique(name.strip())
                city.name = name.strip()
            if is_active is not None:
                city.is_active = is_active
            await self.session.flush()
        return city

    async def delete_city(self, actor: Actor, city_id: int) -> None:
        _require_admin(actor)
        with storage_errors("delete city"):
            city = await self._get_city(city_id)
            if await self.cities.is_referenced(city_id):
                raise ResourceInUse(
                    f"City {city.name} still has users, shops or orders; "
                    "deactivate it instead"
                )
            await self.cities.delete(city)
        logger.warning("City %d deleted by admin %d", city_id, actor.user_id)

    # ── Shops ─────────────────────────────────────────────────────

    async def list_shops(self, city_id: int) -> list[ShopModel]:
        with storage_errors("list shops"):
            city = await self.cities.get_by_id(city_id)
            if city is None or not city.is_active:
                raise CityNotFound(f"City {city_id} not found")
            return await self.shops.list_for_city(city_id)

    async def create_shop(
        self,
        actor: Actor,
        name: str,
        city_id: int,
        description: Optional[str] = None,
    ) -> ShopModel:
        _require_admin(actor)
        with storage_errors("create shop"):
            await self._get_city(city_id)
            shop = await self.shops.create(
                name=name.strip(),
                city_id=city_id,
                description=(description or "").strip() or None,
            )
        logger.info("Shop %d created in city %d", shop.id, city_id)
        return shop

    async def update_shop(
        self,
        actor: Actor,
        shop_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        city_id: Optional[int] = None,
    ) -> ShopModel:
        """``None`` leaves a field unchanged; an empty description clears it."""
        _require_admin(actor)
        with storage_errors("update shop"):
            shop = await self._get_shop(shop_id)
            if name is not None:
                shop.name = name.strip()
            if description is not None:
                shop.description = description.strip() or None
            if city_id is not None and city_id != shop.city_id:
                await self._get_city(city_id)
                shop.city_id = city_id
            await self.session.flush()
        return shop

    async def delete_shop(self, actor: Actor, shop_id: int) -> None:
        _require_admin(actor)
        with storage_errors("delete shop"):
            shop = await self._get_shop(shop_id)
            if await self.shops.has_orders(shop_id):
                raise ResourceInUse(f"Shop {shop.name} is referenced by orders")
            await self.shops.delete(shop)
        logger.warning("Shop %d deleted by admin %d", shop_id, actor.user_id)

    # ── User cities ───────────────────────────────────────────────

    async def assign_city(
        self, actor: Actor, user_id: int, city_id: Optional[int]
    ) -> UserModel:
        """Confirm (or with ``None`` revoke) the city a user orders in."""
        _require_admin(actor)
        with storage_errors("assign city"):
            user = await self.users.get_by_id(user_id)
            if user is None:
                raise UserNotFound(f"User {user_id} not found")
            if city_id is not None:
                city = await self._get_city(city_id)
                if not city.is_active:
                    raise CityNotFound(f"City {city.name} is not active")
            user.city_id = city_id
            await self.session.flush()
        logger.info(
            "User %d city set to %s by admin %d", user_id, city_id, actor.user_id
        )
        return user

    async def propose_city(self, actor: Actor, name: str) -> CityProposalModel:
        with storage_errors("propose city"):
            proposal = await self.proposals.create(actor.user_id, name.strip())
        logger.info("User %d proposed city %r", actor.user_id, proposal.proposed_name)
        return proposal

    async def list_proposals(self, actor: Actor) -> list[CityProposalModel]:
        _require_admin(actor)
        with storage_errors("list proposals"):
            return await self.proposals.list_pending()

    async def approve_proposal(
        self, actor: Actor, proposal_id: int, name: Optional[str] = None
    ) -> CityModel:
        """Create the proposed city (optionally renamed) and assign it."""
        _require_admin(actor)
        with storage_errors("approve proposal"):
            proposal = await self._get_pending(proposal_id)
            city_name = (name or proposal.proposed_name).strip()
            await self._ensure_unique(city_name)
            city = await self.cities.create(city_name)
            if proposal.user_id is not None:
                user = await self.users.get_by_id(proposal.user_id)
                if user is not None:
                    user.city_id = city.id
            proposal.status = ProposalStatus.APPROVED
            await self.session.flush()
        logger.info(
            "Proposal %d approved as city %d by admin %d",
            proposal_id,
            city.id,
            actor.user_id,
        )
        return city

    async def reject_proposal(
        self, actor: Actor, proposal_id: int
    ) -> CityProposalModel:
        _require_admin(actor)
        with storage_errors("reject proposal"):
            proposal = await self._get_pending(proposal_id)
            proposal.status = ProposalStatus.REJECTED
            await self.session.flush()
        return proposal

    # ── Internals ─────────────────────────────────────────────────

    async def _get_city(self, city_id: int) -> CityModel:
        city = await self.cities.get_by_id(city_id)
        if city is None:
            raise CityNotFound(f"City {city_id} not found")
        return city

    async def _get_shop(self, shop_id: int) -> ShopModel:
        shop = await self.shops.get_by_id(shop_id)
        if shop is None:
            raise ShopNotFound(f"Shop {shop_id} not found")
        return shop

    async def _get_pending(self, proposal_id: int) -> CityProposalModel:
        proposal = await self.proposals.get_by_id(proposal_id)
        if proposal is None or proposal.status is not ProposalStatus.PENDING:
            raise ProposalNotFound(f"No pending proposal {proposal_id}")
        return proposal

    async def _ensure_unique(self, name: str) -> None:
        if await self.cities.get_by_name(name) is not None:
            raise DuplicateCity(f"City {name} already exists")
