"""
Order endpoints
===============

POST /api/v1/orders                         -- place an order (passenger)
GET  /api/v1/orders?scope=...               -- active / history / available
GET  /api/v1/orders/{order_id}              -- one order (owner, assignee, admin)
POST /api/v1/orders/{order_id}/{action}     -- lifecycle event
"""

from fastapi import APIRouter, Depends, Request

from bombily.api.dependencies import get_actor, get_clock, get_lifecycle_service
from bombily.api.middleware import limiter
from bombily.api.schemas import (
    ErrorResponse,
    OrderAction,
    OrderCreateRequest,
    OrderDetailResponse,
    OrderResponse,
    ScheduleValues,
)
from bombily.config import settings
from bombily.domain.clock import Clock
from bombily.domain.entities import Actor
from bombily.domain.scheduling import describe
from bombily.services.lifecycle import NewOrder, OrderLifecycleService, OrderScope

router = APIRouter(prefix="/orders", tags=["orders"])

_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=OrderResponse,
    summary="Place an order",
    responses={**_errors, 422: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def create_order(
    request: Request,
    body: OrderCreateRequest,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    schedule = body.schedule
    return await service.create_order(
        actor,
        NewOrder(
            type=body.type,
            from_address=body.from_address,
            to_address=body.to_address,
            comment=body.comment,
            shop_id=body.shop_id,
            schedule_day=schedule.day if schedule else None,
            schedule_hour=schedule.hour if schedule else None,
            schedule_minute=schedule.minute if schedule else None,
        ),
    )


@router.get(
    "",
    response_model=list[OrderResponse],
    summary="List orders for the current user",
    responses=_errors,
)
@limiter.limit(settings.rate_limit)
async def list_orders(
    request: Request,
    scope: OrderScope = OrderScope.ACTIVE,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.list_orders(actor, scope)


@router.get(
    "/{order_id}",
    response_model=OrderDetailResponse,
    summary="Get one order",
    responses=_errors,
)
@limiter.limit(settings.rate_limit)
async def get_order(
    request: Request,
    order_id: int,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    clock: Clock = Depends(get_clock),
):
    order = await service.get_visible(order_id, actor)
    detail = OrderDetailResponse.model_validate(order)
    if order.scheduled_time is not None:
        choice = describe(order.scheduled_time, clock.now())
        if choice is not None:
            detail.schedule = ScheduleValues.model_validate(choice)
    return detail


@router.post(
    "/{order_id}/{action}",
    response_model=OrderResponse,
    summary="Advance or cancel an order",
    description=(
        "Drivers accept, start, arrive and complete; the passenger signals "
        "passenger-ready once the driver has arrived; either side may "
        "cancel before arrival."
    ),
    responses=_errors,
)
@limiter.limit(settings.rate_limit)
async def perform_action(
    request: Request,
    order_id: int,
    action: OrderAction,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.perform(order_id, action.event, actor)
