"""
Surcharge Rules — itemized fees added on top of the base fare.

Each rule is independent and additive:
  1. Highway toll estimate: ¥500 + ¥25 per km (rounded up)
  2. Cargo overage: 6 boxes and 6 suitcases ride free, then ¥500 / ¥800 each
  3. Urgency: booked < 2h before pickup ¥2,000, < 24h ¥1,000
  4. Helper service: flat ¥1,000
  5. Waiting time: first 30 min free, then ¥1,000 per started 15 min
  6. Loading/packing: flat tier of ¥0, ¥1,000 or ¥1,500
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_CEILING
from zoneinfo import ZoneInfo

from config import settings


# ── Constants ──────────────────────────────────────────────

TOLL_BASE = 500
TOLL_PER_KM = 25

FREE_BOXES = 6
BOX_SURCHARGE = 500
FREE_SUITCASES = 6
SUITCASE_SURCHARGE = 800

URGENCY_BANDS = [
    (2, 2000, "EXPRESS_WITHIN_2H"),     # h < 2
    (24, 1000, "URGENT_WITHIN_24H"),    # 2 ≤ h < 24
]
STANDARD_BOOKING_LABEL = "STANDARD"

HELPER_FEE = 1000

FREE_WAITING_MIN = 30
WAITING_BLOCK_MIN = 15
WAITING_BLOCK_FEE = 1000

LOADING_FEE_TIERS = (0, 1000, 1500)


# ── Data classes ───────────────────────────────────────────

@dataclass(frozen=True)
class CargoCounts:
    boxes: int = 0
    suitcases: int = 0


# ── Rules ──────────────────────────────────────────────────

def estimate_toll(distance_km: float) -> int:
    """Estimated highway toll for a route of the given length."""
    if distance_km < 0:
        raise ValueError(f"distance_km must be non-negative, got {distance_km}")
    per_km = (Decimal(str(distance_km)) * TOLL_PER_KM).to_integral_value(rounding=ROUND_CEILING)
    return TOLL_BASE + int(per_km)


def cargo_surcharge(cargo: CargoCounts) -> int:
    """Overage fee for boxes and suitcases beyond the free allowance."""
    if cargo.boxes < 0 or cargo.suitcases < 0:
        raise ValueError(f"cargo counts must be non-negative, got {cargo}")
    fee = 0
    if cargo.boxes > FREE_BOXES:
        fee += (cargo.boxes - FREE_BOXES) * BOX_SURCHARGE
    if cargo.suitcases > FREE_SUITCASES:
        fee += (cargo.suitcases - FREE_SUITCASES) * SUITCASE_SURCHARGE
    return fee


def as_local_time(dt: datetime) -> datetime:
    """Attach the service timezone to naive datetimes."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(settings.TIMEZONE))
    return dt


def hours_until_pickup(booking_time: datetime, pickup_time: datetime) -> float:
    delta = as_local_time(pickup_time) - as_local_time(booking_time)
    return delta.total_seconds() / 3600


def _urgency_band(booking_time: datetime, pickup_time: datetime) -> tuple[int, str]:
    hours = hours_until_pickup(booking_time, pickup_time)
    for threshold, fee, label in URGENCY_BANDS:
        if hours < threshold:
            return fee, label
    return 0, STANDARD_BOOKING_LABEL


def urgency_surcharge(booking_time: datetime, pickup_time: datetime) -> int:
    """
    Fee for short-notice bookings.

    A pickup scheduled before the booking instant falls in the < 2h band.
    """
    return _urgency_band(booking_time, pickup_time)[0]


def urgency_label(booking_time: datetime, pickup_time: datetime) -> str:
    """Display key for the urgency band (shown next to the fee)."""
    return _urgency_band(booking_time, pickup_time)[1]


def helper_fee(requested: bool) -> int:
    return HELPER_FEE if requested else 0


def waiting_fee(waiting_minutes: int) -> int:
    """¥1,000 per started 15-minute block after the first 30 minutes."""
    if waiting_minutes < 0:
        raise ValueError(f"waiting_minutes must be non-negative, got {waiting_minutes}")
    if waiting_minutes <= FREE_WAITING_MIN:
        return 0
    blocks = math.ceil((waiting_minutes - FREE_WAITING_MIN) / WAITING_BLOCK_MIN)
    return blocks * WAITING_BLOCK_FEE


def loading_fee(tier: int) -> int:
    if tier not in LOADING_FEE_TIERS:
        raise ValueError(f"loading fee must be one of {LOADING_FEE_TIERS}, got {tier}")
    return tier
