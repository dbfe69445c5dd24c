"""FastAPI dependency providers — override these in tests."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from services import maps
from services.order_repository import SqlOrderRepository
from services.tariffs import SqlTariffTable


def get_tariff_table(db: AsyncSession = Depends(get_db)) -> SqlTariffTable:
    return SqlTariffTable(db)


def get_order_repository(db: AsyncSession = Depends(get_db)) -> SqlOrderRepository:
    return SqlOrderRepository(db)


def get_distance_provider():
    return maps.get_distance
