# src/core/orders/__init__.py
"""
Домен заказов.
Модели, машина состояний и репозиторий.
"""

from src.core.orders.models import Order, OrderItem, compute_item_totals, utc_now
from src.core.orders.repository import OrderRepository
from src.core.orders.state import OrderStateMachine

__all__ = [
    "Order",
    "OrderItem",
    "compute_item_totals",
    "utc_now",
    "OrderRepository",
    "OrderStateMachine",
]
