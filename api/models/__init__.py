from models.vehicle import Vehicle
from models.order import Order, OrderEvent

__all__ = ["Vehicle", "Order", "OrderEvent"]
