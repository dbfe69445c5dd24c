"""
Order Repository — persistence capability injected into the order endpoints.

Two implementations share one interface (save / find / update / list):
  - SqlOrderRepository: PostgreSQL through an AsyncSession
  - InMemoryOrderRepository: process-local dict, for tests and demos
"""

import uuid
from datetime import datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.order import Order


class OrderRepository(Protocol):
    async def save(self, order: Order) -> Order: ...

    async def find(self, order_id: uuid.UUID) -> Order | None: ...

    async def find_by_tracking_number(self, tracking_number: str) -> Order | None: ...

    async def update(self, order_id: uuid.UUID, **changes) -> Order | None: ...

    async def list(
        self,
        status: str | None = None,
        customer_id: str | None = None,
        driver_id: str | None = None,
        limit: int = 50,
    ) -> list[Order]: ...


class SqlOrderRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, order: Order) -> Order:
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)
        return order

    async def find(self, order_id: uuid.UUID) -> Order | None:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        return result.scalar_one_or_none()

    async def find_by_tracking_number(self, tracking_number: str) -> Order | None:
        result = await self.db.execute(
            select(Order).where(Order.tracking_number == tracking_number)
        )
        return result.scalar_one_or_none()

    async def update(self, order_id: uuid.UUID, **changes) -> Order | None:
        order = await self.find(order_id)
        if order is None:
            return None
        for name, value in changes.items():
            setattr(order, name, value)
        await self.db.commit()
        await self.db.refresh(order)
        return order

    async def list(
        self,
        status: str | None = None,
        customer_id: str | None = None,
        driver_id: str | None = None,
        limit: int = 50,
    ) -> list[Order]:
        query = select(Order)
        if status:
            query = query.where(Order.status == status)
        if customer_id:
            query = query.where(Order.customer_id == customer_id)
        if driver_id:
            query = query.where(Order.driver_id == driver_id)
        query = query.order_by(Order.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())


class InMemoryOrderRepository:
    def __init__(self):
        self._orders: dict[uuid.UUID, Order] = {}

    async def save(self, order: Order) -> Order:
        now = datetime.utcnow()
        if order.id is None:
            order.id = uuid.uuid4()
        if order.status is None:
            order.status = "QUOTE"
        if order.created_at is None:
            order.created_at = now
        order.updated_at = now
        self._orders[order.id] = order
        return order

    async def find(self, order_id: uuid.UUID) -> Order | None:
        return self._orders.get(order_id)

    async def find_by_tracking_number(self, tracking_number: str) -> Order | None:
        for order in self._orders.values():
            if order.tracking_number == tracking_number:
                return order
        return None

    async def update(self, order_id: uuid.UUID, **changes) -> Order | None:
        order = self._orders.get(order_id)
        if order is None:
            return None
        for name, value in changes.items():
            setattr(order, name, value)
        order.updated_at = datetime.utcnow()
        return order

    async def list(
        self,
        status: str | None = None,
        customer_id: str | None = None,
        driver_id: str | None = None,
        limit: int = 50,
    ) -> list[Order]:
        orders = [
            o for o in self._orders.values()
            if (not status or o.status == status)
            and (not customer_id or o.customer_id == customer_id)
            and (not driver_id or o.driver_id == driver_id)
        ]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders[:limit]
