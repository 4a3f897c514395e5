"""Initial schema: cities, shops, users and orders.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

ORDER_STATUSES = (
    "pending",
    "accepted",
    "en_route",
    "arrived",
    "passenger_on_way",
    "completed",
    "cancelled",
)


def upgrade() -> None:
    # ── cities ────────────────────────────────────────────────────────
    op.create_table(
        "cities",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), unique=True, nullable=False),
        sa.Column("is_active", sa.Boolean, default=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── shops ─────────────────────────────────────────────────────────
    op.create_table(
        "shops",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "city_id", sa.Integer, sa.ForeignKey("cities.id"), nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("phone", sa.String(20), unique=True, nullable=False),
        sa.Column(
            "role",
            sa.Enum("passenger", "driver", "admin", name="userrole"),
            default="passenger",
            nullable=False,
        ),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column(
            "city_id", sa.Integer, sa.ForeignKey("cities.id"), nullable=True
        ),
        sa.Column("vehicle_model", sa.String(80), nullable=True),
        sa.Column("vehicle_color", sa.String(40), nullable=True),
        sa.Column("vehicle_plate", sa.String(20), nullable=True),
        sa.Column("sbp_recipient_name", sa.String(120), nullable=True),
        sa.Column("sbp_phone", sa.String(20), nullable=True),
        sa.Column("sbp_bank", sa.String(80), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── orders ────────────────────────────────────────────────────────
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "city_id", sa.Integer, sa.ForeignKey("cities.id"), nullable=True
        ),
        sa.Column(
            "shop_id", sa.Integer, sa.ForeignKey("shops.id"), nullable=True
        ),
        sa.Column(
            "type",
            sa.Enum("taxi", "cargo", "delivery", name="ordertype"),
            default="taxi",
            nullable=False,
        ),
        sa.Column("from_address", sa.String(255), nullable=False),
        sa.Column("to_address", sa.String(255), nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*ORDER_STATUSES, name="orderstatus"),
            default="pending",
            nullable=False,
        ),
        sa.Column(
            "passenger_confirmed", sa.Boolean, default=False, nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        # An unassigned order is either still open or was cancelled
        sa.CheckConstraint(
            "driver_id IS NOT NULL OR status IN ('pending', 'cancelled')",
            name="ck_orders_driver_required",
        ),
    )
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_user", "orders", ["user_id"])
    op.create_index("idx_orders_driver", "orders", ["driver_id"])
    op.create_index("idx_orders_city", "orders", ["city_id"])


def downgrade() -> None:
    op.drop_table("orders")
    op.drop_table("users")
    op.drop_table("shops")
    op.drop_table("cities")
    op.execute("DROP TYPE IF EXISTS orderstatus")
    op.execute("DROP TYPE IF EXISTS ordertype")
    op.execute("DROP TYPE IF EXISTS userrole")
