"""Fare quote API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from dependencies import get_distance_provider, get_tariff_table
from schemas import (
    FareBreakdownResponse, ManualQuoteRequest, QuoteRequest, QuoteResponse,
    SurchargeBreakdown,
)
from services.maps import ProviderUnavailable, RouteEstimate, RouteNotFound
from services.pricing import FareBreakdown, FareResult
from services.quoting import VehicleNotFound, quote_full, quote_manual

logger = logging.getLogger(__name__)

router = APIRouter()


def breakdown_response(breakdown: FareBreakdown) -> FareBreakdownResponse:
    s = breakdown.surcharges
    return FareBreakdownResponse(
        flow=breakdown.flow.value,
        vehicle_id=breakdown.vehicle_id,
        distance_km=breakdown.distance_km,
        vehicle_base_price=breakdown.vehicle_base_price,
        distance_fare=breakdown.distance_fare,
        base_fare=breakdown.base_fare,
        surcharges=SurchargeBreakdown(
            toll_fee=s.toll_fee,
            cargo_surcharge=s.cargo_surcharge,
            urgency_surcharge=s.urgency_surcharge,
            helper_fee=s.helper_fee,
            waiting_fee=s.waiting_fee,
            loading_fee=s.loading_fee,
        ),
        urgency_label=breakdown.urgency_label,
        net_price=breakdown.net_price,
        tax_amount=breakdown.tax_amount,
        total_customer_price=breakdown.total_customer_price,
        company_revenue=breakdown.company_revenue,
        driver_revenue=breakdown.driver_revenue,
    )


def quote_response(result: FareResult, route: RouteEstimate | None) -> QuoteResponse:
    if not result.is_valid:
        return QuoteResponse(
            status="invalid",
            reasons=list(result.reasons),
            distance_km=route.distance_km if route else None,
            duration_min=route.duration_min if route else None,
        )
    return QuoteResponse(
        status="ok",
        breakdown=breakdown_response(result),
        distance_km=round(result.distance_km, 1),
        duration_min=route.duration_min if route else None,
    )


def lookup_http_error(e: Exception) -> HTTPException:
    """Translate tariff/route lookup failures into HTTP errors."""
    if isinstance(e, VehicleNotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, RouteNotFound):
        return HTTPException(status_code=422, detail="No delivery route found between these addresses.")
    logger.warning("Distance provider unavailable: %s", e)
    return HTTPException(
        status_code=503,
        detail="Distance service is temporarily unavailable. Please retry.",
    )


@router.post("/estimate", response_model=QuoteResponse)
async def estimate_quote(
    data: QuoteRequest,
    tariffs=Depends(get_tariff_table),
    get_distance=Depends(get_distance_provider),
):
    """Full quote: route distance, cargo overage, urgency, highway and helper."""
    try:
        result, route = await quote_full(data, tariffs, get_distance)
    except (VehicleNotFound, RouteNotFound, ProviderUnavailable) as e:
        raise lookup_http_error(e) from e
    return quote_response(result, route)


@router.post("/manual", response_model=QuoteResponse)
async def manual_quote(
    data: ManualQuoteRequest,
    tariffs=Depends(get_tariff_table),
    get_distance=Depends(get_distance_provider),
):
    """Manual extras: declared toll, loading tier and waiting time."""
    try:
        result, route = await quote_manual(data, tariffs, get_distance)
    except (VehicleNotFound, RouteNotFound, ProviderUnavailable) as e:
        raise lookup_http_error(e) from e
    return quote_response(result, route)
