# src/core/orders/state.py
"""
Машина состояний заказа.

pending -> accepted -> preparing/collected -> in_delivery -> delivered
Любое нетерминальное состояние может перейти в cancelled.
"""

from __future__ import annotations

from src.common.constants import OrderStatus
from src.core.orders.models import Order


class OrderStateMachine:
    """Допустимые переходы статусов заказа."""

    ALLOWED_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
        OrderStatus.PENDING: (OrderStatus.ACCEPTED, OrderStatus.CANCELLED),
        OrderStatus.ACCEPTED: (OrderStatus.PREPARING, OrderStatus.COLLECTED, OrderStatus.CANCELLED),
        OrderStatus.PREPARING: (OrderStatus.COLLECTED, OrderStatus.CANCELLED),
        OrderStatus.COLLECTED: (OrderStatus.IN_DELIVERY, OrderStatus.CANCELLED),
        OrderStatus.IN_DELIVERY: (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
        OrderStatus.DELIVERED: (),
        OrderStatus.CANCELLED: (),
    }

    TERMINAL: frozenset[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

    @classmethod
    def can_transition(cls, current_status: str, new_status: str) -> bool:
        try:
            current = OrderStatus(current_status)
            new = OrderStatus(new_status)
        except ValueError:
            return False
        return new in cls.ALLOWED_TRANSITIONS.get(current, ())

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        try:
            return OrderStatus(status) in cls.TERMINAL
        except ValueError:
            return False

    @staticmethod
    def is_groupable_state(order: Order) -> bool:
        """Заказ ожидает, не назначен курьеру и ещё не сгруппирован."""
        return (
            order.status == OrderStatus.PENDING
            and order.delivery_driver_id is None
            and not order.is_grouped
        )
