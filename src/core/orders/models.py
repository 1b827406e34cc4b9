# src/core/orders/models.py
"""
Модели данных заказов.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.common.constants import (
    CancellationType,
    OrderStatus,
    OrderType,
    ProviderPaymentMode,
)
from src.core.geo.models import DeliveryAddress, GeoPoint


def utc_now() -> datetime:
    """Текущее время в UTC (aware)."""
    return datetime.now(timezone.utc)


class OrderItem(BaseModel):
    """Позиция заказа."""

    product_id: Optional[str] = Field(None, description="ID товара")
    p1: float = Field(0.0, ge=0.0, description="Себестоимость единицы для платформы")
    p2: float = Field(0.0, ge=0.0, description="Цена единицы для клиента")
    quantity: int = Field(1, ge=1, description="Количество")


def compute_item_totals(items: list[OrderItem]) -> tuple[float, float]:
    """
    Суммирует позиции заказа.

    Returns:
        (p1_total, p2_total)
    """
    p1_total = sum(item.p1 * item.quantity for item in items)
    p2_total = sum(item.p2 * item.quantity for item in items)
    return round(p1_total, 3), round(p2_total, 3)


class Order(BaseModel):
    """Модель заказа."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="UUID заказа")
    client_id: Optional[str] = Field(None, description="ID клиента")
    provider_ids: list[str] = Field(default_factory=list, max_length=2, description="Партнёры (1-2)")
    provider_location: Optional[GeoPoint] = Field(None, description="Координаты основного партнёра")
    delivery_address: Optional[DeliveryAddress] = Field(None, description="Адрес доставки")
    items: list[OrderItem] = Field(default_factory=list, description="Позиции")
    zone_id: Optional[str] = Field(None, description="ID ценовой зоны")

    status: OrderStatus = Field(OrderStatus.PENDING, description="Статус заказа")
    order_type: Optional[OrderType] = Field(None, description="Тип заказа A1..A4")
    is_urgent: bool = False
    is_express: bool = False
    is_priority: bool = False
    # None означает «не задано», группировка разрешена
    can_be_grouped: Optional[bool] = None
    is_grouped: bool = False
    grouped_orders: list[str] = Field(default_factory=list, description="ID заказов группы")

    # Суммы
    p1_total: float = Field(0.0, ge=0.0, description="Выплата партнёру (restaurantPayout)")
    p2_total: float = Field(0.0, ge=0.0, description="Стоимость товаров для клиента")
    delivery_fee: float = Field(0.0, ge=0.0)
    app_fee: float = Field(0.0, ge=0.0)
    platform_solde: float = 0.0
    final_amount: float = Field(0.0, ge=0.0)
    solde: Optional[float] = Field(None, description="Сальдо группы")
    provider_payment_mode: Optional[ProviderPaymentMode] = None

    # Отмена
    cancellation_type: Optional[CancellationType] = None
    cancellation_solde: Optional[float] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    # Отложенная обработка
    processing_delay: int = Field(0, ge=0, description="Задержка обработки (минуты)")
    scheduled_for: Optional[datetime] = None
    protection_end: Optional[datetime] = None

    delivery_driver_id: Optional[str] = Field(None, description="ID назначенного курьера")
    created_at: datetime = Field(default_factory=utc_now, description="Время создания")

    @model_validator(mode="after")
    def fill_totals_from_items(self) -> "Order":
        # Суммы не заданы явно, берём их из позиций
        if self.items and not self.p1_total and not self.p2_total:
            self.p1_total, self.p2_total = compute_item_totals(self.items)
        return self

    @property
    def client_price(self) -> float:
        """Цена товаров для клиента."""
        return self.p2_total

    @property
    def payout(self) -> float:
        """Выплата партнёру."""
        return self.p1_total

    @property
    def effective_order_type(self) -> OrderType:
        """Тип заказа, A1 если не задан."""
        return self.order_type or OrderType.A1

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED
