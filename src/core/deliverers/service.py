# src/core/deliverers/service.py
"""
Сервис курьеров: принятие и завершение заказов.

Счётчик активных заказов читается и записывается в одной транзакции
под блокировкой строки курьера.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from asyncpg import Connection

from src.common.constants import DelivererStatus, OrderType, TypeMsg
from src.common.localization import get_text
from src.common.logger import log_info
from src.core.deliverers.repository import DelivererRepository
from src.core.deliverers.validation import (
    can_accept_order,
    determine_order_type_by_count,
    validate_a2_criteria,
    validate_a3_criteria,
)
from src.core.orders.models import Order
from src.core.orders.repository import OrderRepository
from src.infra.database import DatabaseManager


@dataclass
class DelivererActionResult:
    """Результат действия курьера над заказом."""
    success: bool
    message: str
    order_type: Optional[OrderType] = None
    active_orders_count: Optional[int] = None


class DelivererService:
    """Принятие и завершение заказов курьером."""

    def __init__(
        self,
        db: DatabaseManager,
        order_repository: OrderRepository,
        deliverer_repository: DelivererRepository,
    ) -> None:
        self._db = db
        self._orders = order_repository
        self._deliverers = deliverer_repository

    async def _check_group_with_active(
        self,
        conn: Connection,
        deliverer_id: str,
        active_count: int,
        order: Order,
        lang: Optional[str],
    ) -> Optional[str]:
        """
        Проверяет новый заказ вместе с уже активными заказами курьера.

        Returns:
            Причина отказа или None
        """
        if active_count not in (1, 2):
            return None

        active_orders = await self._orders.list_active_for_deliverer(deliverer_id, conn)
        if len(active_orders) < active_count:
            return None

        if active_count == 1:
            result = validate_a2_criteria(active_orders[0], order, lang)
            group_type = OrderType.A2
        else:
            result = validate_a3_criteria(active_orders[0], active_orders[1], order, lang)
            group_type = OrderType.A3

        if result.valid:
            return None
        return get_text("GROUP_CRITERIA_FAILED", lang, group_type=group_type.value, reason=result.reason)

    async def accept_order(
        self,
        deliverer_id: str,
        order_id: str,
        lang: Optional[str] = None,
    ) -> DelivererActionResult:
        """
        Курьер принимает заказ.

        Проверяет лимит и статус заказа, для второго и третьего заказа
        проверяет критерии A2/A3 с уже активными заказами, назначает тип
        (A4 для срочного, иначе по числу активных; у сгруппированного заказа
        тип группы не меняется) и увеличивает счётчик.
        """
        async with self._db.transaction() as conn:
            deliverer = await self._deliverers.lock_for_update(conn, deliverer_id)
            order = await self._orders.get_by_id(order_id, conn)

            acceptance = can_accept_order(deliverer, order, lang)
            if not acceptance.can_accept:
                return DelivererActionResult(False, acceptance.reason)

            active_count = deliverer.active_orders_count
            rejection = await self._check_group_with_active(conn, deliverer_id, active_count, order, lang)
            if rejection:
                return DelivererActionResult(False, rejection)

            if order.is_grouped:
                # Заказ группы сохраняет общий тип A2/A3
                order_type = order.order_type
                new_type = None
            else:
                order_type = OrderType.A4 if order.is_urgent else determine_order_type_by_count(active_count)
                new_type = order_type

            if not await self._orders.assign_deliverer(conn, order_id, deliverer_id, new_type):
                return DelivererActionResult(False, get_text("ORDER_NOT_AVAILABLE", lang))

            new_count = active_count + 1
            await self._deliverers.save_active_orders(conn, deliverer_id, new_count, DelivererStatus.BUSY)

        await log_info(
            f"Курьер {deliverer_id} принял заказ {order_id} (тип {order_type.value if order_type else '-'}, "
            f"активных {new_count})",
            type_msg=TypeMsg.INFO,
        )
        return DelivererActionResult(
            True,
            get_text("ORDER_ACCEPTED", lang),
            order_type=order_type,
            active_orders_count=new_count,
        )

    async def complete_order(
        self,
        deliverer_id: str,
        order_id: str,
        lang: Optional[str] = None,
    ) -> DelivererActionResult:
        """Курьер завершает доставку; счётчик уменьшается."""
        async with self._db.transaction() as conn:
            if not await self._orders.mark_delivered(conn, order_id, deliverer_id):
                return DelivererActionResult(False, get_text("ORDER_NOT_ASSIGNED", lang))

            new_count = await self.decrement_active_orders(conn, deliverer_id)

        await log_info(
            f"Курьер {deliverer_id} доставил заказ {order_id} (активных {new_count})",
            type_msg=TypeMsg.INFO,
        )
        return DelivererActionResult(
            True,
            get_text("ORDER_COMPLETED", lang),
            active_orders_count=new_count,
        )

    async def decrement_active_orders(self, conn: Connection, deliverer_id: str) -> Optional[int]:
        """
        Уменьшает счётчик активных заказов (не ниже нуля).
        При нуле курьер снова становится активным.

        Args:
            conn: Соединение открытой транзакции
            deliverer_id: ID курьера

        Returns:
            Новый счётчик или None, если курьер не найден
        """
        deliverer = await self._deliverers.lock_for_update(conn, deliverer_id)
        if deliverer is None:
            return None

        new_count = max(0, deliverer.active_orders_count - 1)
        status = DelivererStatus.ACTIVE if new_count == 0 else deliverer.status
        await self._deliverers.save_active_orders(conn, deliverer_id, new_count, status)
        return new_count
