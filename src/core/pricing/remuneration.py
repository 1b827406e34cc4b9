# src/core/pricing/remuneration.py
"""
Расчёт вознаграждения курьера и распределения денег по режимам оплаты.

Режимы (множители доставки / партнёра / клиента задаются в конфиге):
    Mode_1: стандартная доставка
    Mode_2: экспресс
    Mode_3: сгруппированная доставка
    Mode_4: срочная доставка
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from src.common.constants import OrderType, PaymentMode, ProviderPaymentMode, TypeMsg
from src.common.exceptions import ValidationError
from src.common.logger import log_info
from src.config.loader import ModeMultipliers
from src.core.deliverers.models import Deliverer
from src.core.orders.models import Order
from src.core.pricing.balance import solde_simple
from src.core.pricing.models import Zone
from src.core.pricing.repository import PricingConfigRepository


def determine_payment_mode(order: Optional[Order]) -> PaymentMode:
    """
    Определяет режим оплаты заказа.
    Приоритет: срочный > сгруппированный > экспресс > стандартный.
    """
    if order is None:
        return PaymentMode.MODE_1
    if order.is_urgent or order.order_type == OrderType.A4:
        return PaymentMode.MODE_4
    if order.is_grouped or order.order_type in (OrderType.A2, OrderType.A3):
        return PaymentMode.MODE_3
    if order.is_express or order.is_priority:
        return PaymentMode.MODE_2
    return PaymentMode.MODE_1


def get_mode_multipliers(mode: PaymentMode) -> ModeMultipliers:
    """Множители режима из конфигурации (Mode_1 для неизвестного режима)."""
    from src.config import settings

    multipliers = settings.pricing.MODE_MULTIPLIERS
    return multipliers.get(mode.value) or multipliers[PaymentMode.MODE_1.value]


# =============================================================================
# РЕЗУЛЬТАТЫ
# =============================================================================

@dataclass
class ProviderPayout:
    """Выплата партнёру с учётом режима."""
    base_amount: float
    mode_multiplier: float
    amount: float
    provider_payment_mode: str
    business_mode: PaymentMode


@dataclass
class ClientTotal:
    """Сумма к оплате клиентом с учётом режима."""
    base_amount: float
    mode_multiplier: float
    total_amount: float
    product_price: float
    delivery_fee: float
    app_fee: float
    business_mode: PaymentMode


@dataclass
class RemunerationBreakdown:
    """Распределение денег по участникам."""
    deliverer_remuneration: float
    partner_payout: float
    client_amount: float
    platform_revenue: float


@dataclass
class RemunerationResult:
    """Результат расчёта вознаграждения по заказу."""
    order_id: str
    deliverer_id: Optional[str]
    order_type: OrderType
    payment_mode: PaymentMode
    montant_course: float
    multipliers: ModeMultipliers
    breakdown: RemunerationBreakdown
    base_solde: float
    mode_solde: float
    currency: str = "TND"


@dataclass
class ModeTotals:
    """Накопленные суммы по одному режиму."""
    count: int = 0
    total_deliverer: float = 0.0
    total_partner: float = 0.0
    total_client: float = 0.0
    total_platform: float = 0.0


@dataclass
class BatchRemuneration:
    """Агрегированный расчёт по нескольким заказам курьера."""
    deliverer_id: Optional[str]
    count: int
    remunerations: list[RemunerationResult] = field(default_factory=list)
    mode_breakdown: dict[PaymentMode, ModeTotals] = field(default_factory=dict)
    deliverer_earnings: float = 0.0
    total_solde: float = 0.0


# =============================================================================
# ЧИСТЫЕ РАСЧЁТЫ
# =============================================================================

def calculate_provider_payout(
    order: Order,
    business_mode: PaymentMode = PaymentMode.MODE_1,
) -> ProviderPayout:
    """Выплата партнёру, умноженная на множитель режима."""
    multiplier = get_mode_multipliers(business_mode).partner
    provider_mode = order.provider_payment_mode or ProviderPaymentMode.ESPECES
    return ProviderPayout(
        base_amount=round(order.payout, 2),
        mode_multiplier=multiplier,
        amount=round(order.payout * multiplier, 2),
        provider_payment_mode=provider_mode.value,
        business_mode=business_mode,
    )


def calculate_client_total(
    order: Order,
    business_mode: PaymentMode = PaymentMode.MODE_1,
) -> ClientTotal:
    """Итог клиента, товары, доставка и сбор приложения с множителем режима."""
    multiplier = get_mode_multipliers(business_mode).client
    total = order.final_amount
    return ClientTotal(
        base_amount=round(total, 2),
        mode_multiplier=multiplier,
        total_amount=round(total * multiplier, 2),
        product_price=round(order.client_price * multiplier, 2),
        delivery_fee=round(order.delivery_fee * multiplier, 2),
        app_fee=round(order.app_fee * multiplier, 2),
        business_mode=business_mode,
    )


def split_remuneration(
    montant_course: float,
    partner_base: float,
    client_base: float,
    multipliers: ModeMultipliers,
) -> RemunerationBreakdown:
    """
    Делит деньги между курьером, партнёром и платформой.
    Доход платформы считается по округлённым суммам, поэтому
    platform_revenue == client_amount - partner_payout - deliverer_remuneration.
    """
    deliverer = round(montant_course * multipliers.delivery, 2)
    partner = round(partner_base * multipliers.partner, 2)
    client = round(client_base * multipliers.client, 2)
    return RemunerationBreakdown(
        deliverer_remuneration=deliverer,
        partner_payout=partner,
        client_amount=client,
        platform_revenue=round(client - partner - deliverer, 2),
    )


def base_solde_for(order: Order) -> float:
    """
    Базовое сальдо для расчёта вознаграждения.
    Для сгруппированного заказа берётся сохранённое сальдо группы.
    """
    if order.order_type in (OrderType.A2, OrderType.A3) and order.is_grouped and order.solde is not None:
        return order.solde
    return solde_simple(order)


# =============================================================================
# СЕРВИС
# =============================================================================

class RemunerationService:
    """Расчёт стоимости курса и вознаграждения курьера."""

    def __init__(self, pricing_repository: PricingConfigRepository) -> None:
        self._pricing = pricing_repository

    async def resolve_zone(self, order: Order) -> Zone:
        """
        Загружает зону заказа.

        Raises:
            ValidationError: у заказа нет зоны или зона не найдена
        """
        if not order.zone_id:
            raise ValidationError(f"У заказа {order.id} не указана зона")
        zone = await self._pricing.get_zone(order.zone_id)
        if zone is None:
            raise ValidationError(f"Зона {order.zone_id} не найдена")
        return zone

    async def calculate_montant_course(
        self,
        order: Order,
        deliverer: Optional[Deliverer] = None,
        order_type: Optional[OrderType] = None,
    ) -> float:
        """
        Стоимость курса: множитель города × минимальная гарантия зоны для типа.

        Args:
            order: Заказ с указанной зоной
            deliverer: Курьер (для журнала)
            order_type: Тип заказа (по умолчанию тип заказа или A1)

        Returns:
            Стоимость курса, округлённая до 2 знаков

        Raises:
            ValidationError: если зона не найдена
        """
        from src.config import settings

        zone = await self.resolve_zone(order)
        effective_type = order_type or order.effective_order_type
        min_garantie = zone.min_garantie_for(effective_type)

        city = await self._pricing.get_city_for_zone(zone.number)
        multiplier = city.multiplier if city else settings.pricing.DEFAULT_CITY_MULTIPLIER

        montant = round(multiplier * min_garantie, 2)
        await log_info(
            f"Стоимость курса заказа {order.id}: {multiplier} × {min_garantie} = {montant}"
            + (f" (курьер {deliverer.id})" if deliverer else ""),
            type_msg=TypeMsg.DEBUG,
        )
        return montant

    async def calculate_remuneration(
        self,
        order: Order,
        deliverer: Deliverer,
        payment_mode: Optional[PaymentMode] = None,
    ) -> RemunerationResult:
        """
        Полный расчёт вознаграждения по заказу.

        Args:
            order: Заказ
            deliverer: Курьер
            payment_mode: Режим оплаты (определяется автоматически, если не задан)

        Returns:
            RemunerationResult с распределением и сальдо
        """
        from src.config import settings

        mode = payment_mode or determine_payment_mode(order)
        multipliers = get_mode_multipliers(mode)
        order_type = order.effective_order_type

        montant_course = await self.calculate_montant_course(order, deliverer, order_type)
        breakdown = split_remuneration(montant_course, order.payout, order.final_amount, multipliers)
        base_solde = base_solde_for(order)

        return RemunerationResult(
            order_id=order.id,
            deliverer_id=deliverer.id,
            order_type=order_type,
            payment_mode=mode,
            montant_course=montant_course,
            multipliers=multipliers,
            breakdown=breakdown,
            base_solde=round(base_solde, 2),
            mode_solde=round(base_solde * multipliers.client, 2),
            currency=settings.pricing.CURRENCY,
        )

    async def calculate_batch_remuneration(
        self,
        orders: Sequence[Order],
        deliverer: Deliverer,
    ) -> BatchRemuneration:
        """Суммирует вознаграждения курьера по заказам с разбивкой по режимам."""
        batch = BatchRemuneration(
            deliverer_id=deliverer.id,
            count=len(orders),
            mode_breakdown={mode: ModeTotals() for mode in PaymentMode},
        )

        for order in orders:
            result = await self.calculate_remuneration(order, deliverer)
            batch.remunerations.append(result)

            totals = batch.mode_breakdown[result.payment_mode]
            totals.count += 1
            totals.total_deliverer += result.breakdown.deliverer_remuneration
            totals.total_partner += result.breakdown.partner_payout
            totals.total_client += result.breakdown.client_amount
            totals.total_platform += result.breakdown.platform_revenue

            batch.deliverer_earnings += result.breakdown.deliverer_remuneration
            batch.total_solde += result.mode_solde

        batch.deliverer_earnings = round(batch.deliverer_earnings, 2)
        batch.total_solde = round(batch.total_solde, 2)
        return batch
