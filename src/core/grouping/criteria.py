# src/core/grouping/criteria.py
"""
Критерии совместимости заказов для группировки.

Единый источник порогов для планировщика группировки
и для проверки заказов курьером.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Optional, Sequence

from src.common.localization import get_text
from src.core.geo.distance import distance_between
from src.core.orders.models import Order


@dataclass
class CriteriaResult:
    """Результат проверки критериев группировки."""
    valid: bool
    reason: str


@dataclass(frozen=True)
class GroupingThresholds:
    """Пороговые расстояния, км (включительно)."""
    max_provider_distance_km: float
    max_client_distance_km: float


def get_thresholds() -> GroupingThresholds:
    """Пороги из конфигурации."""
    from src.config import settings

    return GroupingThresholds(
        max_provider_distance_km=settings.grouping.MAX_PROVIDER_DISTANCE_KM,
        max_client_distance_km=settings.grouping.MAX_CLIENT_DISTANCE_KM,
    )


def providers_within(order1: Order, order2: Order, thresholds: Optional[GroupingThresholds] = None) -> bool:
    """Партнёры двух заказов не дальше порога. Неизвестная точка = несовместимы."""
    thresholds = thresholds or get_thresholds()
    distance = distance_between(order1.provider_location, order2.provider_location)
    return distance is not None and distance <= thresholds.max_provider_distance_km


def clients_within(order1: Order, order2: Order, thresholds: Optional[GroupingThresholds] = None) -> bool:
    """Адреса доставки двух заказов не дальше порога. Неизвестная точка = несовместимы."""
    thresholds = thresholds or get_thresholds()
    distance = distance_between(order1.delivery_address, order2.delivery_address)
    return distance is not None and distance <= thresholds.max_client_distance_km


def are_orders_compatible(
    order1: Order,
    order2: Order,
    thresholds: Optional[GroupingThresholds] = None,
) -> bool:
    """Пара совместима, если близки и партнёры, и клиенты. Отношение симметрично."""
    thresholds = thresholds or get_thresholds()
    return providers_within(order1, order2, thresholds) and clients_within(order1, order2, thresholds)


def is_group_compatible(orders: Sequence[Order], thresholds: Optional[GroupingThresholds] = None) -> bool:
    """Все пары группы совместимы (для тройки проверяются все три пары)."""
    thresholds = thresholds or get_thresholds()
    return all(are_orders_compatible(a, b, thresholds) for a, b in combinations(orders, 2))


def _format_km(value: float) -> str:
    return f"{value:g}"


def check_group_criteria(orders: Sequence[Order], lang: Optional[str] = None) -> CriteriaResult:
    """
    Проверяет группу с объяснением первой нарушенной пары.

    Args:
        orders: Заказы группы в порядке нумерации (1, 2, 3)
        lang: Язык сообщения

    Returns:
        CriteriaResult(valid, reason)
    """
    thresholds = get_thresholds()

    for index, order in enumerate(orders, start=1):
        if order.provider_location is None or order.delivery_address is None:
            return CriteriaResult(False, get_text("LOCATION_MISSING", lang, index=index))

    for (i, first), (j, second) in combinations(enumerate(orders, start=1), 2):
        pair = f"{i}-{j}"
        if not providers_within(first, second, thresholds):
            return CriteriaResult(
                False,
                get_text("PROVIDERS_TOO_FAR", lang, pair=pair, limit=_format_km(thresholds.max_provider_distance_km)),
            )
        if not clients_within(first, second, thresholds):
            return CriteriaResult(
                False,
                get_text("CLIENTS_TOO_FAR", lang, pair=pair, limit=_format_km(thresholds.max_client_distance_km)),
            )

    return CriteriaResult(True, get_text("CRITERIA_OK", lang))
