"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from bombily.domain.enums import (
    OrderEvent,
    OrderStatus,
    OrderType,
    ProposalStatus,
    ScheduleDay,
    UserRole,
)


class OrderAction(str, enum.Enum):
    """URL spelling of lifecycle events."""

    ACCEPT = "accept"
    START = "start"
    ARRIVE = "arrive"
    PASSENGER_READY = "passenger-ready"
    COMPLETE = "complete"
    CANCEL = "cancel"

    @property
    def event(self) -> OrderEvent:
        return OrderEvent(self.value.replace("-", "_"))


# ── Requests ──────────────────────────────────────────────────────────


class ScheduleRequest(BaseModel):
    day: ScheduleDay
    # Raw form values; the resolver reports empty, fractional or
    # non-numeric input with the offending field
    hour: Any = None
    minute: Any = None


class OrderCreateRequest(BaseModel):
    type: OrderType = OrderType.TAXI
    from_address: str = Field(..., min_length=1, max_length=255)
    to_address: str = Field(..., min_length=1, max_length=255)
    comment: Optional[str] = Field(None, max_length=1000)
    shop_id: Optional[int] = Field(
        None, description="Only for delivery orders placed from a shop."
    )
    schedule: Optional[ScheduleRequest] = Field(
        None, description="Omit for an immediate pickup."
    )

    @model_validator(mode="after")
    def _shop_only_for_delivery(self) -> OrderCreateRequest:
        if self.shop_id is not None and self.type is not OrderType.DELIVERY:
            raise ValueError("shop_id is only allowed for delivery orders")
        return self


class CityCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    is_active: bool = True


class CityUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    is_active: Optional[bool] = None


class ShopCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    city_id: int
    description: Optional[str] = Field(None, max_length=1000)


class ShopUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    city_id: Optional[int] = None
    description: Optional[str] = Field(
        None, max_length=1000, description="An empty string clears it."
    )


class UserCityRequest(BaseModel):
    city_id: Optional[int] = Field(
        ..., description="null revokes the confirmation."
    )


class CityProposalRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)


class ProposalApproveRequest(BaseModel):
    name: Optional[str] = Field(
        None, min_length=1, max_length=120, description="Corrected city name."
    )


# ── Responses ─────────────────────────────────────────────────────────


class ScheduleResolveResponse(BaseModel):
    scheduled_time: datetime
    earliest_today: Optional[datetime] = None


class OrderResponse(BaseModel):
    id: int
    user_id: int
    driver_id: Optional[int] = None
    city_id: Optional[int] = None
    shop_id: Optional[int] = None
    type: OrderType
    from_address: str
    to_address: str
    comment: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    status: OrderStatus
    passenger_confirmed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ScheduleValues(BaseModel):
    """Picker values that reproduce a stored pickup time."""

    day: ScheduleDay
    hour: int
    minute: int

    model_config = {"from_attributes": True}


class OrderDetailResponse(OrderResponse):
    # None for immediate orders and pickups beyond tomorrow
    schedule: Optional[ScheduleValues] = None


class CityResponse(BaseModel):
    id: int
    name: str
    is_active: bool = True

    model_config = {"from_attributes": True}


class ShopResponse(BaseModel):
    id: int
    name: str
    city_id: int
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: int
    phone: str
    role: UserRole
    name: Optional[str] = None
    city_id: Optional[int] = None

    model_config = {"from_attributes": True}


class CityProposalResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    proposed_name: str
    status: ProposalStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    code: str
    field: Optional[str] = None
