# src/core/deliverers/validation.py
"""
Проверки принятия заказов курьером.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.common.constants import OrderStatus, OrderType
from src.common.localization import get_text
from src.core.deliverers.models import Deliverer
from src.core.grouping.criteria import CriteriaResult, check_group_criteria
from src.core.orders.models import Order


@dataclass
class AcceptanceResult:
    """Может ли курьер принять заказ и почему."""
    can_accept: bool
    reason: str


def can_accept_order(
    deliverer: Optional[Deliverer],
    order: Optional[Order],
    lang: Optional[str] = None,
) -> AcceptanceResult:
    """
    Проверяет, может ли курьер принять заказ.

    Отказ, если: курьер или заказ отсутствуют, достигнут лимит активных
    заказов, заказ не в статусе pending, заказ закреплён за другим курьером.
    """
    from src.config import settings

    if deliverer is None or order is None:
        return AcceptanceResult(False, get_text("INVALID_DELIVERER_OR_ORDER", lang))

    limit = settings.deliverer.MAX_ACTIVE_ORDERS
    if deliverer.active_orders_count >= limit:
        return AcceptanceResult(False, get_text("ORDER_LIMIT_REACHED", lang, limit=limit))

    if order.status != OrderStatus.PENDING:
        return AcceptanceResult(False, get_text("ORDER_NOT_AVAILABLE", lang))

    if order.delivery_driver_id and order.delivery_driver_id != deliverer.id:
        return AcceptanceResult(False, get_text("ORDER_ALREADY_ASSIGNED", lang))

    return AcceptanceResult(True, get_text("ORDER_ACCEPTED", lang))


def validate_a2_criteria(order1: Order, order2: Order, lang: Optional[str] = None) -> CriteriaResult:
    """Пара заказов пригодна для A2."""
    return check_group_criteria([order1, order2], lang)


def validate_a3_criteria(order1: Order, order2: Order, order3: Order, lang: Optional[str] = None) -> CriteriaResult:
    """Тройка заказов пригодна для A3 (проверяются все три пары)."""
    return check_group_criteria([order1, order2, order3], lang)


def determine_order_type_by_count(active_orders_count: int) -> Optional[OrderType]:
    """Тип следующего заказа по числу уже активных: 0 -> A1, 1 -> A2, 2 -> A3."""
    return {
        0: OrderType.A1,
        1: OrderType.A2,
        2: OrderType.A3,
    }.get(active_orders_count)
