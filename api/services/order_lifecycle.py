"""
Order Lifecycle — allowed status transitions and timeline events.

  QUOTE → CONFIRMED → SEARCHING_DRIVER → ACCEPTED → PICKUP_IN_PROGRESS
        → IN_TRANSIT → DELIVERED

Any state before IN_TRANSIT may be CANCELLED. DELIVERED and CANCELLED are final.
"""

from datetime import datetime

from models.order import Order, OrderEvent

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "QUOTE": {"CONFIRMED", "CANCELLED"},
    "CONFIRMED": {"SEARCHING_DRIVER", "CANCELLED"},
    "SEARCHING_DRIVER": {"ACCEPTED", "CANCELLED"},
    "ACCEPTED": {"PICKUP_IN_PROGRESS", "CANCELLED"},
    "PICKUP_IN_PROGRESS": {"IN_TRANSIT", "CANCELLED"},
    "IN_TRANSIT": {"DELIVERED"},
    "DELIVERED": set(),
    "CANCELLED": set(),
}

STATUS_DESCRIPTIONS = {
    "QUOTE": "Quote saved",
    "CONFIRMED": "Booking confirmed",
    "SEARCHING_DRIVER": "Looking for a driver",
    "ACCEPTED": "Driver accepted the job",
    "PICKUP_IN_PROGRESS": "Driver is heading to pickup",
    "IN_TRANSIT": "Cargo on board, in transit",
    "DELIVERED": "Delivered",
    "CANCELLED": "Cancelled",
}


class OrderTransitionError(ValueError):
    pass


def plan_transition(order: Order, new_status: str, driver_id: str | None = None) -> dict:
    """
    Validate a status change and return the column changes to apply.

    Raises:
        OrderTransitionError: the transition is not allowed, or ACCEPTED
            without a driver
    """
    current = order.status
    if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise OrderTransitionError(f"Cannot move order from {current} to {new_status}")

    changes: dict = {"status": new_status}
    if driver_id:
        changes["driver_id"] = driver_id
    if new_status == "ACCEPTED" and not (driver_id or order.driver_id):
        raise OrderTransitionError("A driver must be assigned to accept an order")
    if new_status == "DELIVERED":
        changes["delivered_at"] = datetime.utcnow()
    elif new_status == "CANCELLED":
        changes["cancelled_at"] = datetime.utcnow()
    return changes


def record_event(
    order: Order,
    from_status: str | None,
    to_status: str,
    actor_type: str = "SYSTEM",
    actor_id: str | None = None,
    note: str | None = None,
) -> OrderEvent:
    """Append a timeline event to the order (persisted with it)."""
    event = OrderEvent(
        from_status=from_status,
        to_status=to_status,
        actor_type=actor_type,
        actor_id=actor_id,
        note=note or STATUS_DESCRIPTIONS.get(to_status),
        created_at=datetime.utcnow(),
    )
    order.events.append(event)
    return event
