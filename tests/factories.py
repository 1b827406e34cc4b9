# tests/factories.py
"""
Фабрики тестовых данных: заказы с координатами вокруг центра Туниса.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from src.common.constants import OrderStatus
from src.core.geo.models import DeliveryAddress, GeoPoint
from src.core.orders.models import Order, OrderItem


# Центр Туниса и сдвиг широты примерно на 1 км
BASE_LAT = 36.8065
BASE_LON = 10.1815
KM_LAT = 1 / 111.195

FIXED_NOW = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def point_km(north_km: float = 0.0) -> GeoPoint:
    """Точка севернее центра на заданное число километров."""
    return GeoPoint(latitude=BASE_LAT + north_km * KM_LAT, longitude=BASE_LON)


def address_km(north_km: float = 0.0) -> DeliveryAddress:
    """Адрес доставки севернее центра на заданное число километров."""
    return DeliveryAddress(latitude=BASE_LAT + north_km * KM_LAT, longitude=BASE_LON, city="Tunis")


def build_order(
    order_id: str = "order-1",
    provider_km: float = 0.0,
    client_km: float = 0.0,
    minutes_ago: float = 5.0,
    **overrides: Any,
) -> Order:
    """Ожидающий заказ с координатами партнёра и клиента."""
    data: dict[str, Any] = {
        "id": order_id,
        "client_id": f"client-{order_id}",
        "provider_ids": ["provider-1"],
        "provider_location": point_km(provider_km),
        "delivery_address": address_km(client_km),
        "items": [OrderItem(product_id="p-1", p1=10.0, p2=12.5, quantity=1)],
        "zone_id": "zone-1",
        "status": OrderStatus.PENDING,
        "p1_total": 10.0,
        "p2_total": 12.5,
        "created_at": FIXED_NOW - timedelta(minutes=minutes_ago),
    }
    data.update(overrides)
    return Order(**data)


def order_row(order: Order) -> dict[str, Any]:
    """Строка таблицы orders, соответствующая заказу."""
    return {
        "id": order.id,
        "client_id": order.client_id,
        "provider_ids": order.provider_ids,
        "provider_latitude": order.provider_location.latitude if order.provider_location else None,
        "provider_longitude": order.provider_location.longitude if order.provider_location else None,
        "delivery_latitude": order.delivery_address.latitude if order.delivery_address else None,
        "delivery_longitude": order.delivery_address.longitude if order.delivery_address else None,
        "delivery_street": None,
        "delivery_city": order.delivery_address.city if order.delivery_address else None,
        "items": '[{"product_id": "p-1", "p1": 10.0, "p2": 12.5, "quantity": 1}]',
        "zone_id": order.zone_id,
        "status": order.status.value,
        "order_type": order.order_type.value if order.order_type else None,
        "is_urgent": order.is_urgent,
        "is_express": False,
        "is_priority": False,
        "can_be_grouped": None,
        "is_grouped": order.is_grouped,
        "grouped_orders": None,
        "p1_total": order.p1_total,
        "p2_total": order.p2_total,
        "delivery_fee": 0,
        "app_fee": 0,
        "platform_solde": 0,
        "final_amount": 0,
        "solde": None,
        "provider_payment_mode": None,
        "cancellation_type": None,
        "cancellation_solde": None,
        "cancellation_reason": None,
        "cancelled_by": None,
        "cancelled_at": None,
        "processing_delay": 0,
        "scheduled_for": None,
        "protection_end": None,
        "delivery_driver_id": order.delivery_driver_id,
        "created_at": order.created_at,
    }
