"""Order management API endpoints."""

import logging
import secrets
import uuid

from fastapi import APIRouter, Depends, HTTPException

from dependencies import get_distance_provider, get_order_repository, get_tariff_table
from models.order import Order
from schemas import (
    DriverEarningsResponse, ManualOrderCreate, OrderCreate, OrderDetailResponse, OrderResponse,
    OrderStatus, OrderStatusUpdate,
)
from services.maps import ProviderUnavailable, RouteNotFound
from services.order_lifecycle import OrderTransitionError, plan_transition, record_event
from services.quoting import VehicleNotFound, quote_full, quote_manual
from routers.quotes import lookup_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


def _generate_tracking_number() -> str:
    """Human-readable tracking number: JP + 6 digits."""
    return f"JP{secrets.randbelow(1_000_000):06d}"


async def _unique_tracking_number(repo) -> str:
    for _ in range(10):
        number = _generate_tracking_number()
        if await repo.find_by_tracking_number(number) is None:
            return number
    raise HTTPException(status_code=503, detail="Could not allocate a tracking number")


async def _save_new_order(repo, data, result, **fields) -> Order:
    if not result.is_valid:
        raise HTTPException(status_code=422, detail={"reasons": list(result.reasons)})

    status = OrderStatus.CONFIRMED.value if data.confirm else OrderStatus.QUOTE.value
    order = Order(
        tracking_number=await _unique_tracking_number(repo),
        customer_id=data.customer_id,
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        vehicle_id=result.vehicle_id,
        status=status,
        **fields,
        **result.to_record(),
    )
    record_event(order, None, status, actor_type="CUSTOMER", actor_id=data.customer_id)

    order = await repo.save(order)
    logger.info(
        "Order %s created (%s, %s): ¥%d total, driver ¥%d",
        order.tracking_number, order.pricing_flow, status,
        order.total_customer_price, order.driver_revenue,
    )
    return order


@router.post("/", response_model=OrderDetailResponse)
async def create_order(
    data: OrderCreate,
    repo=Depends(get_order_repository),
    tariffs=Depends(get_tariff_table),
    get_distance=Depends(get_distance_provider),
):
    """Create an order. The fare is always recomputed server-side."""
    try:
        result, route = await quote_full(data.quote, tariffs, get_distance)
    except (VehicleNotFound, RouteNotFound, ProviderUnavailable) as e:
        raise lookup_http_error(e) from e

    return await _save_new_order(
        repo, data, result,
        pickup_address=data.quote.pickup_address,
        delivery_address=data.quote.delivery_address,
        pickup_time=data.quote.pickup_time,
        duration_min=route.duration_min,
        boxes=data.quote.boxes,
        suitcases=data.quote.suitcases,
        waiting_minutes=0,
    )


@router.post("/manual", response_model=OrderDetailResponse)
async def create_manual_order(
    data: ManualOrderCreate,
    repo=Depends(get_order_repository),
    tariffs=Depends(get_tariff_table),
    get_distance=Depends(get_distance_provider),
):
    """Create an order from the manual-extras form (toll, loading, waiting)."""
    req = data.quote
    if not (req.pickup_address and req.delivery_address):
        raise HTTPException(status_code=422, detail="Pickup and delivery addresses are required")
    try:
        result, route = await quote_manual(req, tariffs, get_distance)
    except (VehicleNotFound, RouteNotFound, ProviderUnavailable) as e:
        raise lookup_http_error(e) from e

    return await _save_new_order(
        repo, data, result,
        pickup_address=req.pickup_address,
        delivery_address=req.delivery_address,
        pickup_time=data.pickup_time,
        duration_min=route.duration_min if route else None,
        boxes=0,
        suitcases=0,
        waiting_minutes=req.waiting_minutes,
    )


@router.get("/", response_model=list[OrderResponse])
async def list_orders(
    status: OrderStatus | None = None,
    customer_id: str | None = None,
    driver_id: str | None = None,
    limit: int = 50,
    repo=Depends(get_order_repository),
):
    """List orders with optional filters."""
    return await repo.list(
        status=status.value if status else None,
        customer_id=customer_id,
        driver_id=driver_id,
        limit=limit,
    )


@router.get("/track/{tracking_number}", response_model=OrderDetailResponse)
async def track_order(tracking_number: str, repo=Depends(get_order_repository)):
    """Look up an order and its timeline by tracking number."""
    order = await repo.find_by_tracking_number(tracking_number)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/driver/{driver_id}/earnings", response_model=DriverEarningsResponse)
async def driver_earnings(driver_id: str, repo=Depends(get_order_repository)):
    """Total driver share of delivered orders."""
    delivered = await repo.list(status=OrderStatus.DELIVERED.value, driver_id=driver_id, limit=10_000)
    return DriverEarningsResponse(
        driver_id=driver_id,
        delivered_orders=len(delivered),
        driver_revenue=sum(o.driver_revenue for o in delivered),
        company_revenue=sum(o.company_revenue for o in delivered),
    )


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: uuid.UUID, repo=Depends(get_order_repository)):
    """Get order by ID with full breakdown and timeline."""
    order = await repo.find(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.patch("/{order_id}/status", response_model=OrderDetailResponse)
async def update_order_status(
    order_id: uuid.UUID,
    data: OrderStatusUpdate,
    repo=Depends(get_order_repository),
):
    """Move an order along its lifecycle and record a timeline event."""
    order = await repo.find(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    old_status = order.status
    try:
        changes = plan_transition(order, data.status.value, driver_id=data.driver_id)
    except OrderTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    record_event(
        order, old_status, data.status.value,
        actor_type=data.actor_type, actor_id=data.actor_id, note=data.note,
    )
    order = await repo.update(order_id, **changes)
    logger.info("Order %s: %s → %s", order.tracking_number, old_status, data.status.value)
    return order
