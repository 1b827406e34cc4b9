# src/core/pricing/balance.py
"""
Расчёт сальдо (solde) заказов и сальдо платформы.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from src.common.constants import ORDER_TYPE_TO_MARGIN_CATEGORY, OrderType, TypeMsg
from src.common.logger import log_info, log_warning
from src.core.orders.models import Order
from src.core.pricing.repository import PricingConfigRepository


def solde_simple(order: Order) -> float:
    """Сальдо одного заказа: цена для клиента минус выплата партнёру."""
    return order.client_price - order.payout


def solde_dual(order1: Order, order2: Order) -> float:
    return solde_simple(order1) + solde_simple(order2)


def solde_triple(order1: Order, order2: Order, order3: Order) -> float:
    return solde_simple(order1) + solde_simple(order2) + solde_simple(order3)


def solde_amigos(orders: Sequence[Order], app_fee: float) -> float:
    """Сумма простых сальдо плюс сбор приложения."""
    return sum(solde_simple(order) for order in orders) + (app_fee or 0.0)


def solde_by_order_type(order: Order, group_members: Sequence[Order] = ()) -> Optional[float]:
    """
    Сальдо заказа с учётом его типа и участников группы.

    Args:
        order: Основной заказ
        group_members: Остальные заказы группы (без основного)

    Returns:
        Сальдо или None, если тип заказа ещё не назначен
    """
    if order.order_type is None:
        return None

    orders = [order, *group_members]
    if order.order_type == OrderType.A1:
        return solde_simple(order)
    if order.order_type == OrderType.A2:
        return solde_dual(orders[0], orders[1]) if len(orders) >= 2 else solde_simple(order)
    if order.order_type == OrderType.A3:
        if len(orders) >= 3:
            return solde_triple(orders[0], orders[1], orders[2])
        return solde_amigos(orders, order.app_fee)
    # A4: срочный заказ, сальдо со сбором приложения
    return solde_amigos(orders, order.app_fee)


@dataclass
class PlatformSoldeResult:
    """Результат расчёта сальдо платформы."""
    platform_solde: float
    margin: float = 0.0
    additional_fees: float = 0.0
    amigos_bonus: float = 0.0
    fees_breakdown: dict[str, float] = field(default_factory=dict)
    used_fallback: bool = False


class BalanceCalculator:
    """
    Сальдо платформы с учётом маржи, дополнительных сборов и бонуса Amigos.

    Ошибки чтения конфигурации не пробрасываются: расчёт деградирует
    до базовой формулы с нулевыми маржой, сборами и бонусом.
    """

    def __init__(self, pricing_repository: PricingConfigRepository) -> None:
        self._pricing = pricing_repository

    @staticmethod
    def base_platform_solde(order: Order) -> float:
        """Базовое сальдо: клиент минус партнёр плюс доставка и сбор приложения."""
        return order.client_price - order.payout + order.delivery_fee + order.app_fee

    async def calculate_platform_solde(self, order: Order) -> PlatformSoldeResult:
        """
        Сальдо платформы:
        (клиент - партнёр + доставка + сбор) - (маржа + доп. сборы) + бонус Amigos.
        """
        from src.config import settings

        base = self.base_platform_solde(order)
        order_type = order.effective_order_type
        category = ORDER_TYPE_TO_MARGIN_CATEGORY[order_type]

        try:
            margin_settings = await self._pricing.get_margin_settings()
            fees = await self._pricing.get_additional_fees()
        except Exception as e:
            await log_warning(
                f"Конфигурация маржи/сборов недоступна для заказа {order.id}, базовый расчёт: {e}",
                extra={"order_id": order.id},
            )
            return PlatformSoldeResult(platform_solde=round(base, 3), used_fallback=True)

        margin = margin_settings.for_category(category).margin
        additional_fees = fees.applicable_total(category.value, order_type.value)
        bonus = settings.pricing.AMIGOS_BONUS_AMOUNT if settings.pricing.AMIGOS_BONUS_ENABLED else 0.0

        platform_solde = round(base - (margin + additional_fees) + bonus, 3)
        await log_info(
            f"Сальдо платформы заказа {order.id}: {platform_solde} "
            f"(база {base:.3f}, маржа {margin}, сборы {additional_fees}, бонус {bonus})",
            type_msg=TypeMsg.DEBUG,
        )

        return PlatformSoldeResult(
            platform_solde=platform_solde,
            margin=margin,
            additional_fees=additional_fees,
            amigos_bonus=bonus,
            fees_breakdown=fees.breakdown(category.value, order_type.value),
        )
