"""
Tariff Table — per-vehicle base price and per-km rate lookup.

The fare calculator only ever sees VehicleTariff values; where they come from
(database rows or a static table) is decided by the caller.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.vehicle import Vehicle
from services.pricing import VehicleTariff

logger = logging.getLogger(__name__)


DEFAULT_VEHICLES = [
    {
        "id": "keivan",
        "name": "Light Van",
        "display_name": "軽バン",
        "base_price": 2500,
        "per_km_rate": 400,
        "capacity": "Furniture, appliances / up to 6 boxes (60x30cm) and 6 suitcases",
        "max_weight_kg": 350,
    },
    {
        "id": "keitruck",
        "name": "Pick-up",
        "display_name": "軽トラック",
        "base_price": 2800,
        "per_km_rate": 400,
        "capacity": "Refrigerators, tall plants, building materials (no height limit)",
        "max_weight_kg": 350,
    },
]


def _to_tariff(vehicle_id: str, base_price: int, per_km_rate: int) -> VehicleTariff:
    return VehicleTariff(vehicle_id=vehicle_id, base_price=base_price, per_km_rate=per_km_rate)


class SqlTariffTable:
    """Tariffs backed by the vehicles table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_vehicle_tariff(self, vehicle_id: str) -> VehicleTariff | None:
        result = await self.db.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.is_active == True)
        )
        vehicle = result.scalar_one_or_none()
        if vehicle is None:
            return None
        return _to_tariff(vehicle.id, vehicle.base_price, vehicle.per_km_rate)

    async def list_vehicles(self) -> list[dict]:
        result = await self.db.execute(
            select(Vehicle).where(Vehicle.is_active == True).order_by(Vehicle.base_price)
        )
        return [
            {
                "id": v.id,
                "name": v.name,
                "display_name": v.display_name,
                "base_price": v.base_price,
                "per_km_rate": v.per_km_rate,
                "capacity": v.capacity,
                "max_weight_kg": v.max_weight_kg,
            }
            for v in result.scalars().all()
        ]


class StaticTariffTable:
    """In-memory tariffs, e.g. DEFAULT_VEHICLES."""

    def __init__(self, rows: list[dict] | None = None):
        self.rows = {row["id"]: row for row in (rows if rows is not None else DEFAULT_VEHICLES)}

    async def get_vehicle_tariff(self, vehicle_id: str) -> VehicleTariff | None:
        row = self.rows.get(vehicle_id)
        if row is None:
            return None
        return _to_tariff(row["id"], row["base_price"], row["per_km_rate"])

    async def list_vehicles(self) -> list[dict]:
        return sorted(self.rows.values(), key=lambda row: row["base_price"])


async def seed_default_vehicles(db: AsyncSession) -> int:
    """Insert DEFAULT_VEHICLES that are not in the table yet. Returns rows added."""
    existing = set((await db.execute(select(Vehicle.id))).scalars().all())
    added = 0
    for row in DEFAULT_VEHICLES:
        if row["id"] in existing:
            continue
        db.add(Vehicle(**row))
        added += 1
    if added:
        await db.commit()
        logger.info("Seeded %d default vehicle tariffs", added)
    return added
