"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``cities``  -- cities the service operates in (admin-managed)
* ``shops``   -- local shops that delivery orders may reference
* ``users``   -- passengers, drivers and administrators
* ``city_proposals`` -- cities users asked for, awaiting an admin decision
* ``orders``  -- taxi / cargo / delivery orders and their lifecycle status

Indexes
-------
* **B-Tree** on ``orders.status``, ``user_id``, ``driver_id`` and
  ``city_id``: the driver "available orders" feed filters on
  status + city + unassigned, the passenger and driver views on owner.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from bombily.domain.enums import OrderStatus, OrderType, ProposalStatus, UserRole


def _values(enum_cls):
    return [member.value for member in enum_cls]


class CityModel(Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ShopModel(Base):
    __tablename__ = "shops"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone = Column(String(20), unique=True, nullable=False)
    role = Column(
        Enum(UserRole, name="userrole", values_callable=_values),
        default=UserRole.PASSENGER,
        nullable=False,
    )
    name = Column(String(120), nullable=True)
    # NULL until an administrator confirms the user's city
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True)

    # Driver-only details
    vehicle_model = Column(String(80), nullable=True)
    vehicle_color = Column(String(40), nullable=True)
    vehicle_plate = Column(String(20), nullable=True)
    sbp_recipient_name = Column(String(120), nullable=True)
    sbp_phone = Column(String(20), nullable=True)
    sbp_bank = Column(String(80), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CityProposalModel(Base):
    __tablename__ = "city_proposals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    proposed_name = Column(String(120), nullable=False)
    status = Column(
        Enum(ProposalStatus, name="proposalstatus", values_callable=_values),
        default=ProposalStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_city_proposals_status", "status"),)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=True)

    type = Column(
        Enum(OrderType, name="ordertype", values_callable=_values),
        default=OrderType.TAXI,
        nullable=False,
    )
    from_address = Column(String(255), nullable=False)
    to_address = Column(String(255), nullable=False)
    comment = Column(Text, nullable=True)
    scheduled_time = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        Enum(OrderStatus, name="orderstatus", values_callable=_values),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    passenger_confirmed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "driver_id IS NOT NULL OR status IN ('pending', 'cancelled')",
            name="ck_orders_driver_required",
        ),
        Index("idx_orders_status", "status"),
        Index("idx_orders_user", "user_id"),
        Index("idx_orders_driver", "driver_id"),
        Index("idx_orders_city", "city_id"),
    )
