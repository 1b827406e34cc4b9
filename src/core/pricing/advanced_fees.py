# src/core/pricing/advanced_fees.py
"""
Расширенный расчёт сборов ("Zone 5") в 7 шагов.

Входные величины:
    M: базовая маржа (цена для клиента - выплата партнёру)
    [minimum, maximum]: границы маржи для категории заказа
    C: стоимость курса
    T: тариф зоны (промо, если включено)
Все выходные значения округляются до 3 знаков.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from src.common.constants import ORDER_TYPE_TO_MARGIN_CATEGORY, MarginCategory, TypeMsg
from src.common.exceptions import ConfigurationError
from src.common.logger import log_info, log_warning
from src.core.deliverers.models import Deliverer
from src.core.orders.models import Order, utc_now
from src.core.orders.repository import OrderRepository
from src.core.pricing.models import AdditionalFeesConfig, MarginConfig, MarginSettings
from src.core.pricing.remuneration import RemunerationService
from src.core.pricing.repository import PricingConfigRepository


# =============================================================================
# ШАГИ РАСЧЁТА
# =============================================================================

def calculate_frais_1(margin: float, config: MarginConfig) -> float:
    """Шаг 1: корректировка маржи до нижней границы."""
    if config.minimum <= margin <= config.maximum:
        return 0.0
    if margin < config.minimum:
        return config.minimum - margin
    return config.minimum


def calculate_frais_2(margin: float, frais_1: float, tarif: float, montant_course: float) -> float:
    """Шаг 2: модуль расхождения маржи с тарифом и стоимостью курса."""
    return abs(margin + frais_1 + tarif - montant_course)


def calculate_frais_3(montant_course: float, total_amount: float, payout: float) -> float:
    """Шаг 3: превышение стоимости курса над суммой, оставшейся после партнёра."""
    return max(0.0, montant_course - (total_amount - payout))


def calculate_frais_4(client_price: float, floor_fee: float) -> float:
    """Шаг 4: минимальный сбор для заказа с нулевой ценой товаров."""
    return floor_fee if client_price == 0 else 0.0


def calculate_marge_net_amigos(margin: float, frais_1: float, tarif: float, montant_course: float) -> float:
    """Шаг 5: чистая маржа платформы."""
    return margin + frais_1 + tarif - montant_course


def calculate_delivery_fee(marge_net: float, frais_1: float, frais_2: float, tarif: float) -> float:
    """Шаг 6: стоимость доставки для клиента."""
    return frais_1 + tarif if marge_net > 0 else frais_2 + tarif


def calculate_app_fee(frais_3: float, frais_4: float) -> float:
    """Шаг 7: сбор приложения."""
    return frais_3 if frais_3 > 0 else frais_4


@dataclass
class AdvancedFeeInputs:
    """Семь скалярных входов расчёта."""
    margin: float
    margin_config: MarginConfig
    montant_course: float
    tarif: float
    client_price: float
    payout: float
    total_amount: float
    floor_fee: float


@dataclass
class AdvancedFeeBreakdown:
    """Результат расчёта по шагам с итогами."""
    base_margin: float
    montant_course: float
    tarif: float
    frais_1: float
    frais_2: float
    frais_3: float
    frais_4: float
    marge_net_amigos: float
    delivery_fee: float
    app_fee: float
    margin_category: Optional[MarginCategory] = None
    zone_number: Optional[int] = None
    is_promo_active: bool = False
    calculated_at: datetime = field(default_factory=utc_now)


def compute_advanced_fees(inputs: AdvancedFeeInputs) -> AdvancedFeeBreakdown:
    """Выполняет 7 шагов над уже загруженными входами."""
    frais_1 = calculate_frais_1(inputs.margin, inputs.margin_config)
    frais_2 = calculate_frais_2(inputs.margin, frais_1, inputs.tarif, inputs.montant_course)
    frais_3 = calculate_frais_3(inputs.montant_course, inputs.total_amount, inputs.payout)
    frais_4 = calculate_frais_4(inputs.client_price, inputs.floor_fee)
    marge_net = calculate_marge_net_amigos(inputs.margin, frais_1, inputs.tarif, inputs.montant_course)
    delivery_fee = calculate_delivery_fee(marge_net, frais_1, frais_2, inputs.tarif)
    app_fee = calculate_app_fee(frais_3, frais_4)

    return AdvancedFeeBreakdown(
        base_margin=round(inputs.margin, 3),
        montant_course=round(inputs.montant_course, 3),
        tarif=round(inputs.tarif, 3),
        frais_1=round(frais_1, 3),
        frais_2=round(frais_2, 3),
        frais_3=round(frais_3, 3),
        frais_4=round(frais_4, 3),
        marge_net_amigos=round(marge_net, 3),
        delivery_fee=round(delivery_fee, 3),
        app_fee=round(app_fee, 3),
    )


# =============================================================================
# СЕРВИС
# =============================================================================

class AdvancedFeeCalculator:
    """Загружает входы из конфигурации и заказа и выполняет 7-шаговый расчёт."""

    def __init__(
        self,
        pricing_repository: PricingConfigRepository,
        remuneration_service: RemunerationService,
        order_repository: OrderRepository,
    ) -> None:
        self._pricing = pricing_repository
        self._remuneration = remuneration_service
        self._orders = order_repository

    async def _load_margin_settings(self) -> MarginSettings:
        try:
            return await self._pricing.get_margin_settings()
        except ConfigurationError as e:
            await log_warning(f"Маржа не настроена, используются нулевые границы: {e}")
            return MarginSettings()

    async def _load_additional_fees(self) -> AdditionalFeesConfig:
        try:
            return await self._pricing.get_additional_fees()
        except ConfigurationError as e:
            await log_warning(f"Доп. сборы не настроены, используются значения по умолчанию: {e}")
            return AdditionalFeesConfig()

    async def calculate_advanced_fees(
        self,
        order: Order,
        deliverer: Optional[Deliverer] = None,
    ) -> AdvancedFeeBreakdown:
        """
        Полный расчёт сборов для заказа.

        Raises:
            ValidationError: у заказа нет зоны
        """
        zone = await self._remuneration.resolve_zone(order)
        category = ORDER_TYPE_TO_MARGIN_CATEGORY[order.effective_order_type]
        margin_settings = await self._load_margin_settings()
        fees = await self._load_additional_fees()
        montant_course = await self._remuneration.calculate_montant_course(
            order, deliverer, order.effective_order_type
        )

        breakdown = compute_advanced_fees(
            AdvancedFeeInputs(
                margin=order.client_price - order.payout,
                margin_config=margin_settings.for_category(category),
                montant_course=montant_course,
                tarif=zone.tarif,
                client_price=order.client_price,
                payout=order.payout,
                total_amount=order.final_amount,
                floor_fee=fees.floor_fee,
            )
        )
        breakdown.margin_category = category
        breakdown.zone_number = zone.number
        breakdown.is_promo_active = zone.is_promo_active

        await log_info(
            f"Сборы заказа {order.id}: доставка {breakdown.delivery_fee}, приложение {breakdown.app_fee}",
            type_msg=TypeMsg.DEBUG,
        )
        return breakdown

    async def update_order_with_advanced_fees(
        self,
        order: Order,
        deliverer: Optional[Deliverer] = None,
    ) -> Order:
        """
        Пересчитывает сборы и сохраняет их в заказ.
        Итог = цена товаров + доставка + сбор приложения.
        """
        breakdown = await self.calculate_advanced_fees(order, deliverer)
        final_amount = round(order.client_price + breakdown.delivery_fee + breakdown.app_fee, 3)

        await self._orders.update_fees(order.id, breakdown.delivery_fee, breakdown.app_fee, final_amount)

        return order.model_copy(
            update={
                "delivery_fee": breakdown.delivery_fee,
                "app_fee": breakdown.app_fee,
                "final_amount": final_amount,
            }
        )
