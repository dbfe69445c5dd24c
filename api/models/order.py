"""Order and OrderEvent ORM models — quote to delivery lifecycle."""

import uuid
from datetime import datetime
from sqlalchemy import (
    String, Integer, Numeric, DateTime, ForeignKey, Text,
    Enum as PgEnum,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.database import Base

ORDER_STATUSES = (
    "QUOTE", "CONFIRMED", "SEARCHING_DRIVER", "ACCEPTED",
    "PICKUP_IN_PROGRESS", "IN_TRANSIT", "DELIVERED", "CANCELLED",
)
order_status = PgEnum(*ORDER_STATUSES, name="order_status")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    tracking_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    customer_id: Mapped[str | None] = mapped_column(String(64))
    driver_id: Mapped[str | None] = mapped_column(String(64))
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_email: Mapped[str | None] = mapped_column(String(255))

    # Route
    pickup_address: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    pickup_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    distance_km: Mapped[float] = mapped_column(Numeric(8, 2), nullable=False)
    duration_min: Mapped[int | None] = mapped_column(Integer)

    # Cargo
    vehicle_id: Mapped[str] = mapped_column(ForeignKey("vehicles.id"), nullable=False)
    boxes: Mapped[int] = mapped_column(Integer, default=0)
    suitcases: Mapped[int] = mapped_column(Integer, default=0)
    waiting_minutes: Mapped[int] = mapped_column(Integer, default=0)

    # Pricing breakdown (whole yen, stored itemized)
    pricing_flow: Mapped[str] = mapped_column(String(20), nullable=False)
    base_fare: Mapped[int] = mapped_column(Integer, nullable=False)
    toll_fee: Mapped[int] = mapped_column(Integer, default=0)
    cargo_surcharge: Mapped[int] = mapped_column(Integer, default=0)
    urgency_surcharge: Mapped[int] = mapped_column(Integer, default=0)
    helper_fee: Mapped[int] = mapped_column(Integer, default=0)
    loading_fee: Mapped[int] = mapped_column(Integer, default=0)
    waiting_fee: Mapped[int] = mapped_column(Integer, default=0)
    net_price: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    total_customer_price: Mapped[int] = mapped_column(Integer, nullable=False)
    company_revenue: Mapped[int] = mapped_column(Integer, nullable=False)
    driver_revenue: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(order_status, default="QUOTE")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    vehicle = relationship("Vehicle", lazy="selectin")
    events = relationship(
        "OrderEvent", back_populates="order", lazy="selectin",
        order_by="OrderEvent.created_at", cascade="all, delete-orphan",
    )


class OrderEvent(Base):
    __tablename__ = "order_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    from_status: Mapped[str | None] = mapped_column(order_status)
    to_status: Mapped[str] = mapped_column(order_status, nullable=False)
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)  # CUSTOMER, DRIVER, ADMIN, SYSTEM
    actor_id: Mapped[str | None] = mapped_column(String(64))
    note: Mapped[str | None] = mapped_column(Text)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSONB, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="events")
