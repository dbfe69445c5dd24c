"""Tests for the pricing engine."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import logging
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from services.pricing import (
    calculate_fare, split_revenue, verify_breakdown, round_yen,
    FareBreakdown, FareInvariantError, InvalidFare, PricingFlow, Surcharge,
    TripParameters, VehicleTariff,
)
from services.surcharges import CargoCounts

KEIVAN = VehicleTariff(vehicle_id="keivan", base_price=2500, per_km_rate=400)
BOOKED_AT = datetime(2026, 3, 2, 10, 0)


def _full(distance_km=10.0, **kwargs) -> TripParameters:
    defaults = dict(
        distance_km=distance_km,
        vehicle=KEIVAN,
        booking_time=BOOKED_AT,
        pickup_time=BOOKED_AT + timedelta(hours=48),
    )
    defaults.update(kwargs)
    return TripParameters(**defaults)


def _manual(distance_km=10.0, **kwargs) -> TripParameters:
    return TripParameters(distance_km=distance_km, vehicle=KEIVAN, **kwargs)


# ── Concrete scenarios ─────────────────────────────────────

def test_full_quote_no_extras():
    """10 km light van booked two days ahead: base fare only."""
    fare = calculate_fare(_full())
    assert isinstance(fare, FareBreakdown)
    assert fare.distance_fare == 4000
    assert fare.base_fare == 6500
    assert fare.surcharges.total == 0
    assert fare.net_price == 6500
    assert fare.tax_amount == 650
    assert fare.total_customer_price == 7150
    assert fare.company_revenue == 1300
    assert fare.driver_revenue == 5200
    assert fare.urgency_label == "STANDARD"


def test_manual_flow_with_waiting():
    """Declared toll, loading tier and 50 min waiting."""
    fare = calculate_fare(
        _manual(toll_fee=800, loading_fee=1000, waiting_minutes=50),
        PricingFlow.MANUAL,
    )
    assert fare.base_fare == 6500
    assert fare.surcharges.toll_fee == 800
    assert fare.surcharges.loading_fee == 1000
    assert fare.surcharges.waiting_fee == 2000
    assert fare.net_price == 10300
    assert fare.tax_amount == 1030
    assert fare.total_customer_price == 11330
    assert fare.company_revenue == 2060
    assert fare.driver_revenue == 8240
    assert fare.urgency_label is None


def test_full_quote_all_surcharges():
    """Highway, cargo overage, urgency and helper all stack."""
    fare = calculate_fare(_full(
        distance_km=12.3,
        use_highway=True,
        cargo=CargoCounts(boxes=8, suitcases=7),
        helper_service=True,
        pickup_time=BOOKED_AT + timedelta(hours=3),
    ))
    # 12.3 × 400 = 4920; toll 500 + ceil(307.5) = 808
    assert fare.base_fare == 7420
    assert fare.surcharges.toll_fee == 808
    assert fare.surcharges.cargo_surcharge == 2 * 500 + 1 * 800
    assert fare.surcharges.urgency_surcharge == 1000
    assert fare.surcharges.helper_fee == 1000
    assert fare.net_price == 7420 + 808 + 1800 + 1000 + 1000
    assert fare.tax_amount == 1203       # 1202.8
    assert fare.company_revenue == 2406  # 2405.6
    assert fare.driver_revenue == fare.net_price - 2406


def test_manual_flow_ignores_full_quote_extras():
    """Cargo, helper and urgency are not part of the manual flow."""
    fare = calculate_fare(
        _manual(cargo=CargoCounts(boxes=20, suitcases=20), helper_service=True),
        PricingFlow.MANUAL,
    )
    assert fare.surcharges.cargo_surcharge == 0
    assert fare.surcharges.helper_fee == 0
    assert fare.surcharges.urgency_surcharge == 0
    assert fare.net_price == 6500


def test_full_flow_ignores_waiting_and_loading():
    fare = calculate_fare(_full(waiting_minutes=120, loading_fee=1500))
    assert fare.surcharges.waiting_fee == 0
    assert fare.surcharges.loading_fee == 0


def test_highway_toll_only_when_opted_in():
    assert calculate_fare(_full(use_highway=False)).surcharges.toll_fee == 0
    assert calculate_fare(_full(use_highway=True)).surcharges.toll_fee == 750


def test_declared_toll_overrides_estimate():
    fare = calculate_fare(_full(use_highway=True, toll_fee=1200))
    assert fare.surcharges.toll_fee == 1200


def test_explicit_active_set_overrides_flow():
    """An empty surcharge set prices the base fare only."""
    fare = calculate_fare(
        _full(use_highway=True, helper_service=True, pickup_time=BOOKED_AT),
        active=frozenset(),
    )
    assert fare.net_price == fare.base_fare == 6500


def test_helper_only_active_set():
    fare = calculate_fare(
        _full(use_highway=True, helper_service=True),
        active=frozenset({Surcharge.HELPER}),
    )
    assert fare.surcharges.total == 1000


def test_to_record_has_persisted_fields():
    record = calculate_fare(_full()).to_record()
    for key in (
        "base_fare", "toll_fee", "cargo_surcharge", "loading_fee", "waiting_fee",
        "net_price", "tax_amount", "total_customer_price",
        "company_revenue", "driver_revenue",
    ):
        assert isinstance(record[key], int)
    assert record["pricing_flow"] == "FULL_QUOTE"


# ── Invalid state guard ────────────────────────────────────

@pytest.mark.parametrize("distance_km", [0, 0.0, -1.0, float("nan"), float("inf")])
def test_non_positive_distance_is_invalid(distance_km):
    fare = calculate_fare(_full(distance_km=distance_km))
    assert isinstance(fare, InvalidFare)
    assert fare.is_valid is False
    assert not hasattr(fare, "net_price")


def test_missing_distance_is_invalid():
    """No route yet: invalid result, not an exception."""
    fare = calculate_fare(_full(distance_km=None))
    assert isinstance(fare, InvalidFare)
    assert "Route distance must be positive" in fare.reasons


def test_missing_vehicle_is_invalid():
    fare = calculate_fare(_full(vehicle=None))
    assert isinstance(fare, InvalidFare)
    assert "Vehicle tariff is missing" in fare.reasons


def test_missing_vehicle_and_distance_reports_both():
    fare = calculate_fare(_full(distance_km=0, vehicle=None))
    assert len(fare.reasons) == 2


def test_negative_cargo_is_invalid():
    fare = calculate_fare(_full(cargo=CargoCounts(boxes=-1)))
    assert isinstance(fare, InvalidFare)


def test_negative_waiting_is_invalid():
    fare = calculate_fare(_manual(waiting_minutes=-5), PricingFlow.MANUAL)
    assert isinstance(fare, InvalidFare)


def test_negative_declared_toll_is_invalid():
    fare = calculate_fare(_manual(toll_fee=-100), PricingFlow.MANUAL)
    assert isinstance(fare, InvalidFare)


def test_unknown_loading_tier_is_invalid():
    fare = calculate_fare(_manual(loading_fee=500), PricingFlow.MANUAL)
    assert isinstance(fare, InvalidFare)


def test_urgency_needs_pickup_time():
    fare = calculate_fare(_full(pickup_time=None))
    assert isinstance(fare, InvalidFare)


def test_manual_flow_needs_no_times():
    fare = calculate_fare(_manual(), PricingFlow.MANUAL)
    assert fare.is_valid


# ── Rounding ───────────────────────────────────────────────

def test_round_half_up():
    assert round_yen(100.5) == 101
    assert round_yen(2.5) == 3
    assert round_yen(2.4999) == 2
    assert round_yen(0) == 0


def test_distance_fare_uses_decimal_input():
    """1.15 km × ¥10 is 11.5, rounded up even though the float is 11.4999..."""
    vehicle = VehicleTariff(vehicle_id="test", base_price=0, per_km_rate=10)
    fare = calculate_fare(_full(distance_km=1.15, vehicle=vehicle))
    assert fare.distance_fare == 12


def test_tax_half_rounds_up():
    """Net ¥1,005 → tax 100.5 → 101."""
    vehicle = VehicleTariff(vehicle_id="test", base_price=5, per_km_rate=100)
    fare = calculate_fare(_full(distance_km=10, vehicle=vehicle))
    assert fare.net_price == 1005
    assert fare.tax_amount == 101
    assert fare.total_customer_price == 1106


# ── Revenue split ──────────────────────────────────────────

def test_split_revenue_examples():
    assert split_revenue(6500) == (1300, 5200)
    assert split_revenue(1003) == (201, 802)   # 200.6 rounds up
    assert split_revenue(1002) == (200, 802)   # 200.4 rounds down
    assert split_revenue(0) == (0, 0)


def test_split_revenue_rejects_negative():
    with pytest.raises(ValueError):
        split_revenue(-1)


@pytest.mark.parametrize("net_price", list(range(0, 3000)) + [99_999, 123_457, 1_000_003])
def test_split_always_reconciles(net_price):
    company, driver = split_revenue(net_price)
    assert company + driver == net_price
    assert company >= 0 and driver >= 0


@pytest.mark.parametrize("distance_km", [0.1, 0.35, 1.15, 2.675, 7.5, 10.05, 33.3, 99.99, 250.4])
@pytest.mark.parametrize("boxes", [0, 6, 7, 15])
@pytest.mark.parametrize("hours_ahead", [0.5, 2, 23.9, 48])
def test_breakdown_reconciles(distance_km, boxes, hours_ahead):
    fare = calculate_fare(_full(
        distance_km=distance_km,
        cargo=CargoCounts(boxes=boxes, suitcases=boxes),
        use_highway=True,
        pickup_time=BOOKED_AT + timedelta(hours=hours_ahead),
    ))
    assert fare.total_customer_price == fare.net_price + fare.tax_amount
    assert fare.company_revenue + fare.driver_revenue == fare.net_price
    assert fare.net_price == fare.base_fare + fare.surcharges.total
    for value in (fare.base_fare, fare.net_price, fare.tax_amount,
                  fare.total_customer_price, fare.company_revenue, fare.driver_revenue):
        assert isinstance(value, int) and value >= 0


# ── Monotonicity ───────────────────────────────────────────

@pytest.mark.parametrize("use_highway", [False, True])
def test_longer_distance_never_cheaper(use_highway):
    previous = None
    for step in range(1, 600):
        fare = calculate_fare(_full(distance_km=step * 0.137, use_highway=use_highway))
        if previous is not None:
            assert fare.base_fare >= previous.base_fare
            assert fare.net_price >= previous.net_price
            assert fare.total_customer_price >= previous.total_customer_price
        previous = fare


# ── Reconciliation check ───────────────────────────────────

def test_verify_breakdown_passes_consistent():
    fare = calculate_fare(_full())
    assert verify_breakdown(fare, strict=True) is fare


def test_verify_breakdown_strict_raises():
    broken = replace(calculate_fare(_full()), driver_revenue=5201)
    with pytest.raises(FareInvariantError):
        verify_breakdown(broken, strict=True)


def test_verify_breakdown_lenient_recomputes(caplog):
    broken = replace(calculate_fare(_full()), tax_amount=0, total_customer_price=1)
    with caplog.at_level(logging.ERROR):
        fixed = verify_breakdown(broken, strict=False)
    assert fixed.tax_amount == 650
    assert fixed.total_customer_price == 7150
    assert "reconciliation" in caplog.text
