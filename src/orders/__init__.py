"""Order aggregate hand-off."""

from src.orders.sync import (
    LoggingNotifier,
    OrderNotifier,
    OrderRepository,
    OrderSynchronizer,
    StoreOrderRepository,
)

__all__ = [
    "LoggingNotifier",
    "OrderNotifier",
    "OrderRepository",
    "OrderSynchronizer",
    "StoreOrderRepository",
]
