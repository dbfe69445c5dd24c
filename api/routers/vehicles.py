"""Vehicle tariff API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from dependencies import get_tariff_table
from schemas import VehicleResponse

router = APIRouter()


@router.get("/", response_model=list[VehicleResponse])
async def list_vehicles(tariffs=Depends(get_tariff_table)):
    """List active vehicle classes with their tariffs."""
    return await tariffs.list_vehicles()


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(vehicle_id: str, tariffs=Depends(get_tariff_table)):
    """Get one vehicle class by ID."""
    for vehicle in await tariffs.list_vehicles():
        if vehicle["id"] == vehicle_id:
            return vehicle
    raise HTTPException(status_code=404, detail="Vehicle not found")
