"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from typing import Literal
from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────

class OrderStatus(str, Enum):
    QUOTE = "QUOTE"
    CONFIRMED = "CONFIRMED"
    SEARCHING_DRIVER = "SEARCHING_DRIVER"
    ACCEPTED = "ACCEPTED"
    PICKUP_IN_PROGRESS = "PICKUP_IN_PROGRESS"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class LoadingFeeTier(int, Enum):
    NONE = 0
    STANDARD = 1000
    FULL = 1500


# ── Vehicle Schemas ────────────────────────────────────────

class VehicleResponse(BaseModel):
    id: str
    name: str
    display_name: str
    base_price: int
    per_km_rate: int
    capacity: str | None = None
    max_weight_kg: int | None = None

    class Config:
        from_attributes = True


# ── Quote Schemas ──────────────────────────────────────────

class QuoteRequest(BaseModel):
    """Full-quote flow: cargo counts, timing, highway and helper options."""
    pickup_address: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    vehicle_id: str
    pickup_time: datetime
    boxes: int = Field(0, ge=0)
    suitcases: int = Field(0, ge=0)
    use_highway: bool = False
    helper_service: bool = False


class ManualQuoteRequest(BaseModel):
    """Manual-extras flow: declared toll, loading tier and waiting time."""
    vehicle_id: str
    distance_km: float | None = Field(None, gt=0)
    pickup_address: str | None = None
    delivery_address: str | None = None
    highway_toll: int = Field(0, ge=0)
    loading_fee: LoadingFeeTier = LoadingFeeTier.NONE
    waiting_minutes: int = Field(0, ge=0)


class SurchargeBreakdown(BaseModel):
    toll_fee: int
    cargo_surcharge: int
    urgency_surcharge: int
    helper_fee: int
    waiting_fee: int
    loading_fee: int


class FareBreakdownResponse(BaseModel):
    flow: str
    vehicle_id: str
    distance_km: float
    vehicle_base_price: int
    distance_fare: int
    base_fare: int
    surcharges: SurchargeBreakdown
    urgency_label: str | None = None
    net_price: int
    tax_amount: int
    total_customer_price: int
    company_revenue: int
    driver_revenue: int
    currency: str = "JPY"


class QuoteResponse(BaseModel):
    status: Literal["ok", "invalid"]
    breakdown: FareBreakdownResponse | None = None
    reasons: list[str] = []
    distance_km: float | None = None
    duration_min: int | None = None


# ── Order Schemas ──────────────────────────────────────────

class OrderCreate(BaseModel):
    quote: QuoteRequest
    customer_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    confirm: bool = False


class ManualOrderCreate(BaseModel):
    """Dispatcher-entered order; addresses are required to book it."""
    quote: ManualQuoteRequest
    customer_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    pickup_time: datetime | None = None
    confirm: bool = False


class OrderEventResponse(BaseModel):
    from_status: str | None
    to_status: str
    actor_type: str
    note: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: uuid.UUID
    tracking_number: str
    status: str
    customer_id: str | None = None
    driver_id: str | None = None
    pickup_address: str
    delivery_address: str
    pickup_time: datetime | None = None
    vehicle_id: str
    distance_km: float
    duration_min: int | None = None
    boxes: int = 0
    suitcases: int = 0
    waiting_minutes: int = 0
    pricing_flow: str
    base_fare: int
    toll_fee: int
    cargo_surcharge: int
    urgency_surcharge: int
    helper_fee: int
    loading_fee: int
    waiting_fee: int
    net_price: int
    tax_amount: int
    total_customer_price: int
    company_revenue: int
    driver_revenue: int
    created_at: datetime
    delivered_at: datetime | None = None

    class Config:
        from_attributes = True


class OrderDetailResponse(OrderResponse):
    events: list[OrderEventResponse] = []


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    driver_id: str | None = None
    actor_type: str = "SYSTEM"
    actor_id: str | None = None
    note: str | None = None


class DriverEarningsResponse(BaseModel):
    driver_id: str
    delivered_orders: int
    driver_revenue: int
    company_revenue: int
    currency: str = "JPY"
