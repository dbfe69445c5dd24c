"""
Quoting — turn an API request into calculate_fare() input.

Both HTTP flows (full quote and manual extras) resolve the tariff and route
here and then call the same calculator, so there is one pricing code path.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from config import settings
from schemas import ManualQuoteRequest, QuoteRequest
from services.maps import RouteEstimate
from services.pricing import FareResult, PricingFlow, TripParameters, calculate_fare
from services.quote_pipeline import DistanceProvider
from services.surcharges import CargoCounts


class VehicleNotFound(LookupError):
    pass


def booking_now() -> datetime:
    return datetime.now(ZoneInfo(settings.TIMEZONE))


async def _tariff(tariffs, vehicle_id: str):
    tariff = await tariffs.get_vehicle_tariff(vehicle_id)
    if tariff is None:
        raise VehicleNotFound(f"Unknown vehicle class: {vehicle_id}")
    return tariff


async def quote_full(
    req: QuoteRequest,
    tariffs,
    get_distance: DistanceProvider,
    booking_time: datetime | None = None,
) -> tuple[FareResult, RouteEstimate]:
    """
    Price a full-quote request.

    Raises:
        VehicleNotFound: vehicle_id is not in the tariff table
        DistanceLookupError: the route could not be resolved
    """
    tariff = await _tariff(tariffs, req.vehicle_id)
    route = await get_distance(req.pickup_address, req.delivery_address)

    params = TripParameters(
        distance_km=route.distance_km,
        vehicle=tariff,
        use_highway=req.use_highway,
        cargo=CargoCounts(boxes=req.boxes, suitcases=req.suitcases),
        helper_service=req.helper_service,
        booking_time=booking_time or booking_now(),
        pickup_time=req.pickup_time,
    )
    return calculate_fare(params, PricingFlow.FULL_QUOTE), route


async def quote_manual(
    req: ManualQuoteRequest,
    tariffs,
    get_distance: DistanceProvider,
) -> tuple[FareResult, RouteEstimate | None]:
    """Price a manual-extras request; distance is looked up unless given."""
    tariff = await _tariff(tariffs, req.vehicle_id)

    route = None
    distance_km = req.distance_km or 0.0
    if req.distance_km is None and req.pickup_address and req.delivery_address:
        route = await get_distance(req.pickup_address, req.delivery_address)
        distance_km = route.distance_km

    params = TripParameters(
        distance_km=distance_km,
        vehicle=tariff,
        toll_fee=req.highway_toll,
        waiting_minutes=req.waiting_minutes,
        loading_fee=int(req.loading_fee),
    )
    return calculate_fare(params, PricingFlow.MANUAL), route
