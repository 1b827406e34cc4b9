# src/core/orders/repository.py
"""
Репозиторий для работы с заказами в БД.

Все записи, которые могут конкурировать с другими процессами,
выполняются условным UPDATE с проверкой количества затронутых строк.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from asyncpg import Connection, Record

from src.common.constants import GROUPABLE_ORDER_TYPES, OrderStatus, OrderType
from src.core.geo.models import DeliveryAddress, GeoPoint
from src.core.orders.models import Order, OrderItem
from src.infra.database import DatabaseManager, affected_rows


_ORDER_COLUMNS = """
    id, client_id, provider_ids,
    provider_latitude, provider_longitude,
    delivery_latitude, delivery_longitude, delivery_street, delivery_city,
    items, zone_id, status, order_type,
    is_urgent, is_express, is_priority, can_be_grouped, is_grouped, grouped_orders,
    p1_total, p2_total, delivery_fee, app_fee, platform_solde, final_amount, solde,
    provider_payment_mode,
    cancellation_type, cancellation_solde, cancellation_reason, cancelled_by, cancelled_at,
    processing_delay, scheduled_for, protection_end,
    delivery_driver_id, created_at
"""


class OrderRepository:
    """Репозиторий заказов."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных
        """
        self._db = db

    def _executor(self, conn: Optional[Connection]) -> Any:
        """Соединение транзакции, если передано, иначе менеджер пула."""
        return conn if conn is not None else self._db

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_by_id(self, order_id: str, conn: Optional[Connection] = None) -> Optional[Order]:
        """
        Получает заказ по ID.

        Args:
            order_id: UUID заказа
            conn: Соединение транзакции (необязательно)

        Returns:
            Заказ или None
        """
        row = await self._executor(conn).fetchrow(
            f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = $1",
            order_id,
        )
        return self._row_to_order(row) if row else None

    async def get_many(self, order_ids: list[str]) -> list[Order]:
        """Получает заказы по списку ID."""
        if not order_ids:
            return []
        rows = await self._db.fetch(
            f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ANY($1::text[])",
            order_ids,
        )
        return [self._row_to_order(row) for row in rows]

    async def find_grouping_candidates(
        self,
        created_after: datetime,
        now: datetime,
        limit: int,
    ) -> list[Order]:
        """
        Ищет заказы, пригодные для группировки.

        Ожидающие, не сгруппированные, типа A1/A2/A3, не срочные,
        без явного запрета группировки, созданные после created_after
        и без отложенного старта в будущем. Старые заказы первыми.
        """
        rows = await self._db.fetch(
            f"""
            SELECT {_ORDER_COLUMNS}
            FROM orders
            WHERE status = $1
              AND is_grouped = FALSE
              AND order_type = ANY($2::text[])
              AND is_urgent IS NOT TRUE
              AND can_be_grouped IS DISTINCT FROM FALSE
              AND created_at >= $3
              AND (scheduled_for IS NULL OR scheduled_for <= $4)
            ORDER BY created_at ASC
            LIMIT $5
            """,
            OrderStatus.PENDING.value,
            [order_type.value for order_type in GROUPABLE_ORDER_TYPES],
            created_after,
            now,
            limit,
        )
        return [self._row_to_order(row) for row in rows]

    async def list_active_for_deliverer(
        self,
        deliverer_id: str,
        conn: Optional[Connection] = None,
    ) -> list[Order]:
        """Незавершённые заказы курьера в порядке принятия."""
        rows = await self._executor(conn).fetch(
            f"""
            SELECT {_ORDER_COLUMNS}
            FROM orders
            WHERE delivery_driver_id = $1
              AND status NOT IN ($2, $3)
            ORDER BY created_at ASC
            """,
            deliverer_id,
            OrderStatus.DELIVERED.value,
            OrderStatus.CANCELLED.value,
        )
        return [self._row_to_order(row) for row in rows]

    # =========================================================================
    # УСЛОВНЫЕ ЗАПИСИ
    # =========================================================================

    async def mark_grouped(
        self,
        conn: Connection,
        order_ids: list[str],
        group_type: OrderType,
        solde: float,
    ) -> int:
        """
        Помечает заказы как группу, только если каждый всё ещё
        ожидает, не назначен курьеру и не сгруппирован.

        Returns:
            Количество обновлённых строк
        """
        status = await conn.execute(
            """
            UPDATE orders
            SET is_grouped = TRUE,
                grouped_orders = $2::text[],
                order_type = $3,
                solde = $4
            WHERE id = ANY($1::text[])
              AND status = $5
              AND delivery_driver_id IS NULL
              AND is_grouped = FALSE
            """,
            order_ids,
            order_ids,
            group_type.value,
            solde,
            OrderStatus.PENDING.value,
        )
        return affected_rows(status)

    async def release_delayed_orders(self, now: datetime) -> int:
        """
        Снимает отложенный старт с заказов, время которых наступило.

        Returns:
            Количество освобождённых заказов
        """
        status = await self._db.execute(
            """
            UPDATE orders
            SET processing_delay = 0,
                scheduled_for = NULL
            WHERE status = $1
              AND is_grouped = FALSE
              AND scheduled_for IS NOT NULL
              AND scheduled_for <= $2
            """,
            OrderStatus.PENDING.value,
            now,
        )
        return affected_rows(status)

    async def mark_cancelled(
        self,
        conn: Connection,
        order_id: str,
        cancellation_type: str,
        solde: float,
        reason: Optional[str],
        cancelled_by: Optional[str],
        cancelled_at: datetime,
    ) -> bool:
        """
        Отменяет заказ, если он не в терминальном статусе.

        Returns:
            True если заказ был отменён этим вызовом
        """
        status = await conn.execute(
            """
            UPDATE orders
            SET status = $2,
                cancellation_type = $3,
                cancellation_solde = $4,
                cancellation_reason = $5,
                cancelled_by = $6,
                cancelled_at = $7
            WHERE id = $1
              AND status NOT IN ($2, $8)
            """,
            order_id,
            OrderStatus.CANCELLED.value,
            cancellation_type,
            solde,
            reason,
            cancelled_by,
            cancelled_at,
            OrderStatus.DELIVERED.value,
        )
        return affected_rows(status) == 1

    async def assign_deliverer(
        self,
        conn: Connection,
        order_id: str,
        deliverer_id: str,
        order_type: Optional[OrderType] = None,
    ) -> bool:
        """
        Назначает курьера на ожидающий заказ.
        Заказ, уже закреплённый за этим курьером, тоже принимается.
        Тип заказа меняется, только если передан.
        """
        status = await conn.execute(
            """
            UPDATE orders
            SET status = $3,
                delivery_driver_id = $2,
                order_type = COALESCE($5, order_type)
            WHERE id = $1
              AND status = $4
              AND (delivery_driver_id IS NULL OR delivery_driver_id = $2)
            """,
            order_id,
            deliverer_id,
            OrderStatus.ACCEPTED.value,
            OrderStatus.PENDING.value,
            order_type.value if order_type else None,
        )
        return affected_rows(status) == 1

    async def mark_delivered(self, conn: Connection, order_id: str, deliverer_id: str) -> bool:
        """Завершает доставку заказа, назначенного этому курьеру."""
        status = await conn.execute(
            """
            UPDATE orders
            SET status = $3
            WHERE id = $1
              AND delivery_driver_id = $2
              AND status NOT IN ($3, $4)
            """,
            order_id,
            deliverer_id,
            OrderStatus.DELIVERED.value,
            OrderStatus.CANCELLED.value,
        )
        return affected_rows(status) == 1

    async def update_fees(
        self,
        order_id: str,
        delivery_fee: float,
        app_fee: float,
        final_amount: float,
    ) -> bool:
        """Сохраняет рассчитанные сборы и итоговую сумму заказа."""
        status = await self._db.execute(
            """
            UPDATE orders
            SET delivery_fee = $2,
                app_fee = $3,
                final_amount = $4
            WHERE id = $1
            """,
            order_id,
            delivery_fee,
            app_fee,
            final_amount,
        )
        return affected_rows(status) == 1

    # =========================================================================
    # ПРЕОБРАЗОВАНИЕ
    # =========================================================================

    @staticmethod
    def _row_to_order(row: Record) -> Order:
        """Преобразует запись БД в модель заказа."""
        data = dict(row)

        provider_location = None
        if data.get("provider_latitude") is not None and data.get("provider_longitude") is not None:
            provider_location = GeoPoint(
                latitude=data["provider_latitude"],
                longitude=data["provider_longitude"],
            )

        delivery_address = None
        if data.get("delivery_latitude") is not None and data.get("delivery_longitude") is not None:
            delivery_address = DeliveryAddress(
                latitude=data["delivery_latitude"],
                longitude=data["delivery_longitude"],
                street=data.get("delivery_street"),
                city=data.get("delivery_city"),
            )

        raw_items = data.get("items") or []
        if isinstance(raw_items, str):
            raw_items = json.loads(raw_items)

        return Order(
            id=str(data["id"]),
            client_id=data.get("client_id"),
            provider_ids=list(data.get("provider_ids") or []),
            provider_location=provider_location,
            delivery_address=delivery_address,
            items=[OrderItem(**item) for item in raw_items],
            zone_id=data.get("zone_id"),
            status=data.get("status") or OrderStatus.PENDING,
            order_type=data.get("order_type"),
            is_urgent=bool(data.get("is_urgent")),
            is_express=bool(data.get("is_express")),
            is_priority=bool(data.get("is_priority")),
            can_be_grouped=data.get("can_be_grouped"),
            is_grouped=bool(data.get("is_grouped")),
            grouped_orders=list(data.get("grouped_orders") or []),
            p1_total=float(data.get("p1_total") or 0),
            p2_total=float(data.get("p2_total") or 0),
            delivery_fee=float(data.get("delivery_fee") or 0),
            app_fee=float(data.get("app_fee") or 0),
            platform_solde=float(data.get("platform_solde") or 0),
            final_amount=float(data.get("final_amount") or 0),
            solde=float(data["solde"]) if data.get("solde") is not None else None,
            provider_payment_mode=data.get("provider_payment_mode"),
            cancellation_type=data.get("cancellation_type"),
            cancellation_solde=float(data["cancellation_solde"]) if data.get("cancellation_solde") is not None else None,
            cancellation_reason=data.get("cancellation_reason"),
            cancelled_by=data.get("cancelled_by"),
            cancelled_at=data.get("cancelled_at"),
            processing_delay=data.get("processing_delay") or 0,
            scheduled_for=data.get("scheduled_for"),
            protection_end=data.get("protection_end"),
            delivery_driver_id=data.get("delivery_driver_id"),
            created_at=data["created_at"],
        )
