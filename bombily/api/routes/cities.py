"""
Cities and shops visible to every user
======================================

GET  /api/v1/cities                   -- cities passengers can register and order in
GET  /api/v1/cities/{city_id}/shops   -- shops delivering in an active city
POST /api/v1/cities/proposals         -- ask an administrator to add a city
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bombily.api.dependencies import get_actor, get_db, get_directory_service
from bombily.api.middleware import limiter
from bombily.api.schemas import (
    CityProposalRequest,
    CityProposalResponse,
    CityResponse,
    ErrorResponse,
    ShopResponse,
)
from bombily.config import settings
from bombily.domain.entities import Actor
from bombily.infrastructure.repositories import CityRepository
from bombily.services.directory import DirectoryService

router = APIRouter(prefix="/cities", tags=["cities"])


@router.get("", response_model=list[CityResponse], summary="List active cities")
@limiter.limit(settings.rate_limit)
async def list_cities(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    return await CityRepository(db).get_active()


@router.get(
    "/{city_id}/shops",
    response_model=list[ShopResponse],
    summary="List the shops of an active city",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def list_shops(
    request: Request,
    city_id: int,
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.list_shops(city_id)


@router.post(
    "/proposals",
    response_model=CityProposalResponse,
    status_code=201,
    summary="Propose a city that is not in the list yet",
)
@limiter.limit(settings.rate_limit)
async def propose_city(
    request: Request,
    body: CityProposalRequest,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.propose_city(actor, body.name)
