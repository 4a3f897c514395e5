"""
Admin / observability endpoints
===============================

GET    /api/v1/admin/orders                          -- latest 100 orders
DELETE /api/v1/admin/orders/{order_id}               -- force delete (out-of-band override)
GET    /api/v1/admin/cities                          -- all cities, active or not
POST   /api/v1/admin/cities                          -- add a city
PATCH  /api/v1/admin/cities/{city_id}                -- rename / (de)activate
DELETE /api/v1/admin/cities/{city_id}                -- delete an unused city
POST   /api/v1/admin/shops                           -- add a shop to a city
PATCH  /api/v1/admin/shops/{shop_id}                 -- edit a shop
DELETE /api/v1/admin/shops/{shop_id}                 -- delete a shop without orders
PUT    /api/v1/admin/users/{user_id}/city            -- confirm a user's city
GET    /api/v1/admin/city-proposals                  -- pending proposals
POST   /api/v1/admin/city-proposals/{id}/approve     -- create the city and assign it
POST   /api/v1/admin/city-proposals/{id}/reject
GET    /api/v1/admin/health                          -- simple health check
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from bombily.api.dependencies import (
    get_actor,
    get_directory_service,
    get_lifecycle_service,
)
from bombily.api.middleware import limiter
from bombily.api.schemas import (
    CityCreateRequest,
    CityProposalResponse,
    CityResponse,
    CityUpdateRequest,
    ErrorResponse,
    HealthResponse,
    OrderResponse,
    ProposalApproveRequest,
    ShopCreateRequest,
    ShopResponse,
    ShopUpdateRequest,
    UserCityRequest,
    UserResponse,
)
from bombily.config import settings
from bombily.domain.entities import Actor
from bombily.domain.errors import Forbidden
from bombily.services.directory import DirectoryService
from bombily.services.lifecycle import OrderLifecycleService, OrderScope

router = APIRouter(prefix="/admin", tags=["admin"])

_ADMIN_ERRORS = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
_CONFLICT = {409: {"model": ErrorResponse}}


@router.get(
    "/orders",
    response_model=list[OrderResponse],
    summary="List the most recent orders",
    responses={403: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def recent_orders(
    request: Request,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    if not actor.is_admin:
        raise Forbidden("Administrators only")
    return await service.list_orders(actor, OrderScope.ACTIVE)


@router.delete(
    "/orders/{order_id}",
    status_code=204,
    summary="Force-delete an order in any status",
    responses=_ADMIN_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def delete_order(
    request: Request,
    order_id: int,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    await service.force_delete(order_id, actor)
    return Response(status_code=204)


# ── Cities ────────────────────────────────────────────────────────────


@router.get(
    "/cities",
    response_model=list[CityResponse],
    summary="List every city, including inactive ones",
    responses={403: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def all_cities(
    request: Request,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.list_cities(actor)


@router.post(
    "/cities",
    response_model=CityResponse,
    status_code=201,
    summary="Add a city",
    responses={**_ADMIN_ERRORS, **_CONFLICT},
)
@limiter.limit(settings.rate_limit)
async def create_city(
    request: Request,
    body: CityCreateRequest,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.create_city(actor, body.name, body.is_active)


@router.patch(
    "/cities/{city_id}",
    response_model=CityResponse,
    summary="Rename a city or switch it on / off",
    responses={**_ADMIN_ERRORS, **_CONFLICT},
)
@limiter.limit(settings.rate_limit)
async def update_city(
    request: Request,
    city_id: int,
    body: CityUpdateRequest,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.update_city(
        actor, city_id, name=body.name, is_active=body.is_active
    )


@router.delete(
    "/cities/{city_id}",
    status_code=204,
    summary="Delete a city nothing refers to",
    responses={**_ADMIN_ERRORS, **_CONFLICT},
)
@limiter.limit(settings.rate_limit)
async def delete_city(
    request: Request,
    city_id: int,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    await directory.delete_city(actor, city_id)
    return Response(status_code=204)


# ── Shops ─────────────────────────────────────────────────────────────


@router.post(
    "/shops",
    response_model=ShopResponse,
    status_code=201,
    summary="Add a shop to a city",
    responses=_ADMIN_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def create_shop(
    request: Request,
    body: ShopCreateRequest,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.create_shop(
        actor, body.name, body.city_id, description=body.description
    )


@router.patch(
    "/shops/{shop_id}",
    response_model=ShopResponse,
    summary="Edit a shop",
    responses=_ADMIN_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def update_shop(
    request: Request,
    shop_id: int,
    body: ShopUpdateRequest,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.update_shop(
        actor,
        shop_id,
        name=body.name,
        description=body.description,
        city_id=body.city_id,
    )


@router.delete(
    "/shops/{shop_id}",
    status_code=204,
    summary="Delete a shop no order refers to",
    responses={**_ADMIN_ERRORS, **_CONFLICT},
)
@limiter.limit(settings.rate_limit)
async def delete_shop(
    request: Request,
    shop_id: int,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    await directory.delete_shop(actor, shop_id)
    return Response(status_code=204)


# ── User cities ───────────────────────────────────────────────────────


@router.put(
    "/users/{user_id}/city",
    response_model=UserResponse,
    summary="Confirm (or revoke) the city a user orders in",
    responses=_ADMIN_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def assign_city(
    request: Request,
    user_id: int,
    body: UserCityRequest,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.assign_city(actor, user_id, body.city_id)


@router.get(
    "/city-proposals",
    response_model=list[CityProposalResponse],
    summary="List pending city proposals, newest first",
    responses={403: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def pending_proposals(
    request: Request,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.list_proposals(actor)


@router.post(
    "/city-proposals/{proposal_id}/approve",
    response_model=CityResponse,
    summary="Create the proposed city and assign it to the proposer",
    responses={**_ADMIN_ERRORS, **_CONFLICT},
)
@limiter.limit(settings.rate_limit)
async def approve_proposal(
    request: Request,
    proposal_id: int,
    body: Optional[ProposalApproveRequest] = None,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    name = body.name if body else None
    return await directory.approve_proposal(actor, proposal_id, name=name)


@router.post(
    "/city-proposals/{proposal_id}/reject",
    response_model=CityProposalResponse,
    summary="Reject a city proposal",
    responses=_ADMIN_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def reject_proposal(
    request: Request,
    proposal_id: int,
    actor: Actor = Depends(get_actor),
    directory: DirectoryService = Depends(get_directory_service),
):
    return await directory.reject_proposal(actor, proposal_id)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
