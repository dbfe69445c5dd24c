"""
Pricing Engine — Fare breakdown for same-day delivery quotes.

Every quote flow goes through calculate_fare():
  1. Base fare: vehicle base price + distance × per-km rate
  2. Surcharges: the flow's active set (see FLOW_SURCHARGES)
  3. Net price: base fare + surcharges
  4. Tax: 10% consumption tax on the net price
  5. Revenue split: 20% platform, driver gets the remainder

All money is whole yen. Rounding is round-half-up everywhere (round_yen).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import ClassVar

from config import settings
from services import surcharges as rules
from services.surcharges import CargoCounts

logger = logging.getLogger(__name__)


# ── Constants ──────────────────────────────────────────────

TAX_RATE = Decimal("0.10")        # Consumption tax
COMPANY_SHARE = Decimal("0.20")   # Platform cut of the net price


class PricingFlow(str, Enum):
    FULL_QUOTE = "FULL_QUOTE"     # Quote form: cargo, urgency, highway, helper
    MANUAL = "MANUAL"             # Dispatcher form: declared toll, loading, waiting


class Surcharge(str, Enum):
    TOLL = "toll_fee"
    CARGO = "cargo_surcharge"
    URGENCY = "urgency_surcharge"
    HELPER = "helper_fee"
    WAITING = "waiting_fee"
    LOADING = "loading_fee"


FLOW_SURCHARGES: dict[PricingFlow, frozenset[Surcharge]] = {
    PricingFlow.FULL_QUOTE: frozenset({
        Surcharge.TOLL, Surcharge.CARGO, Surcharge.URGENCY, Surcharge.HELPER,
    }),
    PricingFlow.MANUAL: frozenset({
        Surcharge.TOLL, Surcharge.WAITING, Surcharge.LOADING,
    }),
}


class FareInvariantError(AssertionError):
    """A breakdown failed reconciliation. Always a bug in this module."""


# ── Data classes ───────────────────────────────────────────

@dataclass(frozen=True)
class VehicleTariff:
    vehicle_id: str
    base_price: int
    per_km_rate: int


@dataclass(frozen=True)
class TripParameters:
    distance_km: float | None
    vehicle: VehicleTariff | None
    toll_fee: int | None = None           # Declared toll; None → estimate if use_highway
    use_highway: bool = False
    cargo: CargoCounts = field(default_factory=CargoCounts)
    helper_service: bool = False
    booking_time: datetime | None = None
    pickup_time: datetime | None = None
    waiting_minutes: int = 0
    loading_fee: int = 0


@dataclass(frozen=True)
class Surcharges:
    toll_fee: int = 0
    cargo_surcharge: int = 0
    urgency_surcharge: int = 0
    helper_fee: int = 0
    waiting_fee: int = 0
    loading_fee: int = 0

    @property
    def total(self) -> int:
        return (
            self.toll_fee + self.cargo_surcharge + self.urgency_surcharge
            + self.helper_fee + self.waiting_fee + self.loading_fee
        )


@dataclass(frozen=True)
class FareBreakdown:
    flow: PricingFlow
    distance_km: float
    vehicle_id: str
    vehicle_base_price: int
    distance_fare: int
    base_fare: int
    surcharges: Surcharges
    net_price: int
    tax_amount: int
    total_customer_price: int
    company_revenue: int
    driver_revenue: int
    urgency_label: str | None = None

    is_valid: ClassVar[bool] = True

    def to_record(self) -> dict:
        """Flat column mapping used when persisting an order."""
        return {
            "pricing_flow": self.flow.value,
            "distance_km": self.distance_km,
            "base_fare": self.base_fare,
            "toll_fee": self.surcharges.toll_fee,
            "cargo_surcharge": self.surcharges.cargo_surcharge,
            "urgency_surcharge": self.surcharges.urgency_surcharge,
            "helper_fee": self.surcharges.helper_fee,
            "loading_fee": self.surcharges.loading_fee,
            "waiting_fee": self.surcharges.waiting_fee,
            "net_price": self.net_price,
            "tax_amount": self.tax_amount,
            "total_customer_price": self.total_customer_price,
            "company_revenue": self.company_revenue,
            "driver_revenue": self.driver_revenue,
        }


@dataclass(frozen=True)
class InvalidFare:
    """Not ready to quote. Never shown as a ¥0 price."""
    reasons: tuple[str, ...]

    is_valid: ClassVar[bool] = False


FareResult = FareBreakdown | InvalidFare


# ── Money helpers ──────────────────────────────────────────

def round_yen(value: float | int | Decimal) -> int:
    """Round half up to a whole yen."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_tax(net_price: int) -> int:
    return round_yen(net_price * TAX_RATE)


def split_revenue(net_price: int) -> tuple[int, int]:
    """
    Split the net price into (company_revenue, driver_revenue).

    The driver share is the remainder, so the two always add up to net_price.
    """
    if net_price < 0:
        raise ValueError(f"net_price must be non-negative, got {net_price}")
    company = round_yen(net_price * COMPANY_SHARE)
    return company, net_price - company


# ── Core Functions ─────────────────────────────────────────

def _validate(params: TripParameters, active: frozenset[Surcharge]) -> list[str]:
    reasons = []
    if params.vehicle is None:
        reasons.append("Vehicle tariff is missing")
    if params.distance_km is None or not math.isfinite(params.distance_km) or params.distance_km <= 0:
        reasons.append("Route distance must be positive")
    if params.cargo.boxes < 0 or params.cargo.suitcases < 0:
        reasons.append("Cargo counts must be non-negative")
    if params.waiting_minutes < 0:
        reasons.append("Waiting minutes must be non-negative")
    if params.toll_fee is not None and params.toll_fee < 0:
        reasons.append("Toll fee must be non-negative")
    if Surcharge.LOADING in active and params.loading_fee not in rules.LOADING_FEE_TIERS:
        reasons.append(f"Loading fee must be one of {rules.LOADING_FEE_TIERS}")
    if Surcharge.URGENCY in active and (params.booking_time is None or params.pickup_time is None):
        reasons.append("Booking and pickup times are required")
    return reasons


def _toll(params: TripParameters) -> int:
    if params.toll_fee is not None:
        return params.toll_fee
    if params.use_highway:
        return rules.estimate_toll(params.distance_km)
    return 0


def calculate_surcharges(params: TripParameters, active: frozenset[Surcharge]) -> Surcharges:
    """Itemize the active surcharges. Inputs must already be validated."""
    return Surcharges(
        toll_fee=_toll(params) if Surcharge.TOLL in active else 0,
        cargo_surcharge=rules.cargo_surcharge(params.cargo) if Surcharge.CARGO in active else 0,
        urgency_surcharge=(
            rules.urgency_surcharge(params.booking_time, params.pickup_time)
            if Surcharge.URGENCY in active else 0
        ),
        helper_fee=rules.helper_fee(params.helper_service) if Surcharge.HELPER in active else 0,
        waiting_fee=rules.waiting_fee(params.waiting_minutes) if Surcharge.WAITING in active else 0,
        loading_fee=rules.loading_fee(params.loading_fee) if Surcharge.LOADING in active else 0,
    )


def _settle(breakdown: FareBreakdown) -> FareBreakdown:
    """Recompute every field derived from net_price."""
    tax = calculate_tax(breakdown.net_price)
    company, driver = split_revenue(breakdown.net_price)
    return replace(
        breakdown,
        tax_amount=tax,
        total_customer_price=breakdown.net_price + tax,
        company_revenue=company,
        driver_revenue=driver,
    )


def verify_breakdown(breakdown: FareBreakdown, strict: bool | None = None) -> FareBreakdown:
    """
    Check the reconciliation invariants of a breakdown.

    In strict mode a violation raises FareInvariantError; otherwise it is
    logged and the derived fields are recomputed from net_price.
    """
    if strict is None:
        strict = settings.PRICING_STRICT_INVARIANTS

    problems = []
    if breakdown.company_revenue + breakdown.driver_revenue != breakdown.net_price:
        problems.append(
            f"company {breakdown.company_revenue} + driver {breakdown.driver_revenue} "
            f"!= net {breakdown.net_price}"
        )
    if breakdown.net_price + breakdown.tax_amount != breakdown.total_customer_price:
        problems.append(
            f"net {breakdown.net_price} + tax {breakdown.tax_amount} "
            f"!= total {breakdown.total_customer_price}"
        )
    if not problems:
        return breakdown

    message = "; ".join(problems)
    if strict:
        raise FareInvariantError(message)
    logger.error("Fare breakdown failed reconciliation, recomputing: %s", message)
    return _settle(breakdown)


def calculate_fare(
    params: TripParameters,
    flow: PricingFlow = PricingFlow.FULL_QUOTE,
    active: frozenset[Surcharge] | None = None,
) -> FareResult:
    """
    Calculate the full fare breakdown for a trip.

    Args:
        params: Trip parameters (distance, tariff, cargo, timing, extras)
        flow: Calling flow; selects the default surcharge set
        active: Explicit surcharge set overriding the flow default

    Returns:
        FareBreakdown, or InvalidFare listing why no quote can be given yet
    """
    if active is None:
        active = FLOW_SURCHARGES[flow]

    reasons = _validate(params, active)
    if reasons:
        return InvalidFare(reasons=tuple(reasons))

    vehicle = params.vehicle
    distance_fare = round_yen(Decimal(str(params.distance_km)) * vehicle.per_km_rate)
    base_fare = vehicle.base_price + distance_fare

    extras = calculate_surcharges(params, active)
    net_price = base_fare + extras.total

    tax = calculate_tax(net_price)
    company, driver = split_revenue(net_price)

    label = None
    if Surcharge.URGENCY in active:
        label = rules.urgency_label(params.booking_time, params.pickup_time)

    breakdown = FareBreakdown(
        flow=flow,
        distance_km=params.distance_km,
        vehicle_id=vehicle.vehicle_id,
        vehicle_base_price=vehicle.base_price,
        distance_fare=distance_fare,
        base_fare=base_fare,
        surcharges=extras,
        net_price=net_price,
        tax_amount=tax,
        total_customer_price=net_price + tax,
        company_revenue=company,
        driver_revenue=driver,
        urgency_label=label,
    )
    return verify_breakdown(breakdown)
