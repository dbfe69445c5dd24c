"""Tests for the surcharge rules."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

from datetime import datetime, timedelta, timezone

import pytest

from services.surcharges import (
    CargoCounts, estimate_toll, cargo_surcharge, urgency_surcharge, urgency_label,
    helper_fee, waiting_fee, loading_fee, hours_until_pickup,
)

BOOKED_AT = datetime(2026, 3, 2, 10, 0)


# ── Highway toll ───────────────────────────────────────────

def test_toll_estimate():
    """¥500 + ¥25/km, rounded up."""
    assert estimate_toll(10) == 750
    assert estimate_toll(10.01) == 751     # 250.25 → 251
    assert estimate_toll(12.3) == 808      # 307.5 → 308
    assert estimate_toll(0) == 500


def test_toll_rejects_negative_distance():
    with pytest.raises(ValueError):
        estimate_toll(-1)


# ── Cargo overage ──────────────────────────────────────────

def test_six_boxes_are_free():
    assert cargo_surcharge(CargoCounts(boxes=6)) == 0


def test_seventh_box_costs_500():
    assert cargo_surcharge(CargoCounts(boxes=7)) == 500


def test_suitcase_overage():
    assert cargo_surcharge(CargoCounts(suitcases=6)) == 0
    assert cargo_surcharge(CargoCounts(suitcases=7)) == 800
    assert cargo_surcharge(CargoCounts(suitcases=9)) == 2400


def test_boxes_and_suitcases_add_up():
    assert cargo_surcharge(CargoCounts(boxes=10, suitcases=8)) == 4 * 500 + 2 * 800


def test_box_overage_independent_of_suitcases():
    """Spare suitcase allowance does not cover extra boxes."""
    assert cargo_surcharge(CargoCounts(boxes=8, suitcases=0)) == 1000


def test_negative_cargo_rejected():
    with pytest.raises(ValueError):
        cargo_surcharge(CargoCounts(boxes=-1))


# ── Urgency ────────────────────────────────────────────────

@pytest.mark.parametrize("delta, fee", [
    (timedelta(minutes=30), 2000),
    (timedelta(hours=1, minutes=59), 2000),
    (timedelta(hours=2), 1000),
    (timedelta(hours=12), 1000),
    (timedelta(hours=23, minutes=59), 1000),
    (timedelta(hours=24), 0),
    (timedelta(days=7), 0),
])
def test_urgency_bands(delta, fee):
    assert urgency_surcharge(BOOKED_AT, BOOKED_AT + delta) == fee


def test_pickup_in_the_past_is_most_urgent():
    assert urgency_surcharge(BOOKED_AT, BOOKED_AT - timedelta(hours=1)) == 2000


def test_urgency_labels():
    assert urgency_label(BOOKED_AT, BOOKED_AT + timedelta(hours=1)) == "EXPRESS_WITHIN_2H"
    assert urgency_label(BOOKED_AT, BOOKED_AT + timedelta(hours=5)) == "URGENT_WITHIN_24H"
    assert urgency_label(BOOKED_AT, BOOKED_AT + timedelta(hours=30)) == "STANDARD"


def test_naive_times_are_tokyo_local():
    """A naive 12:00 pickup is 12:00 JST, i.e. 03:00 UTC."""
    booked_utc = datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc)   # 10:00 JST
    pickup_naive = datetime(2026, 3, 2, 12, 0)
    assert hours_until_pickup(booked_utc, pickup_naive) == pytest.approx(2.0)
    assert urgency_surcharge(booked_utc, pickup_naive) == 1000


# ── Helper, waiting, loading ───────────────────────────────

def test_helper_fee():
    assert helper_fee(True) == 1000
    assert helper_fee(False) == 0


@pytest.mark.parametrize("minutes, fee", [
    (0, 0),
    (30, 0),
    (31, 1000),
    (45, 1000),
    (46, 2000),
    (50, 2000),
    (60, 2000),
    (61, 3000),
])
def test_waiting_fee_blocks(minutes, fee):
    assert waiting_fee(minutes) == fee


def test_waiting_fee_rejects_negative():
    with pytest.raises(ValueError):
        waiting_fee(-1)


@pytest.mark.parametrize("tier", [0, 1000, 1500])
def test_loading_fee_tiers(tier):
    assert loading_fee(tier) == tier


def test_loading_fee_rejects_unknown_tier():
    with pytest.raises(ValueError):
        loading_fee(1200)
