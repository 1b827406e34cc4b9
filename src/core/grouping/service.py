# src/core/grouping/service.py
"""
Сервис группировки заказов.

Жадный поиск: сначала тройки (A3), затем пары (A2) среди оставшихся
кандидатов, в порядке создания заказов. Это допустимая эвристика,
а не глобальный оптимум.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import combinations
from typing import Iterator, Optional, Sequence

from src.common.constants import OrderType, TypeMsg
from src.common.exceptions import ConcurrencyConflict, ValidationError
from src.common.localization import get_text
from src.common.logger import log_error, log_info, log_warning
from src.core.deliverers.repository import DelivererRepository
from src.core.grouping.criteria import (
    GroupingThresholds,
    are_orders_compatible,
    get_thresholds,
    is_group_compatible,
)
from src.core.notifications.service import PushNotificationService
from src.core.orders.models import Order, utc_now
from src.core.orders.repository import OrderRepository
from src.core.orders.state import OrderStateMachine
from src.core.pricing.balance import solde_simple
from src.infra.database import DatabaseManager


GROUP_TYPE_BY_SIZE: dict[int, OrderType] = {
    2: OrderType.A2,
    3: OrderType.A3,
}


def build_compatibility_graph(
    orders: Sequence[Order],
    thresholds: GroupingThresholds,
) -> list[set[int]]:
    """Для каждого заказа индексы совместимых с ним заказов."""
    neighbours: list[set[int]] = [set() for _ in orders]
    for i, j in combinations(range(len(orders)), 2):
        if are_orders_compatible(orders[i], orders[j], thresholds):
            neighbours[i].add(j)
            neighbours[j].add(i)
    return neighbours


def iter_cliques(neighbours: list[set[int]], size: int) -> Iterator[tuple[int, ...]]:
    """
    Пары или тройки попарно совместимых индексов
    в лексикографическом порядке (i < j < k).
    """
    for i in range(len(neighbours)):
        for j in sorted(n for n in neighbours[i] if n > i):
            if size == 2:
                yield (i, j)
                continue
            for k in sorted(n for n in neighbours[i] & neighbours[j] if n > j):
                yield (i, j, k)


@dataclass
class GroupSummary:
    """Сформированная группа."""
    grouped_orders: list[str]
    solde: float
    group_type: OrderType


@dataclass
class GroupingResult:
    """Итог одного прохода группировки."""
    grouped: int = 0
    attempted: int = 0
    groups: list[GroupSummary] = field(default_factory=list)


class GroupingService:
    """Поиск кандидатов и формирование групп заказов."""

    def __init__(
        self,
        db: DatabaseManager,
        order_repository: OrderRepository,
        deliverer_repository: DelivererRepository,
        notifier: Optional[PushNotificationService] = None,
    ) -> None:
        self._db = db
        self._orders = order_repository
        self._deliverers = deliverer_repository
        self._notifier = notifier

    async def find_grouping_candidates(self, now: Optional[datetime] = None) -> list[Order]:
        """Ожидающие заказы из окна просмотра, старые первыми."""
        from src.config import settings

        now = now or utc_now()
        created_after = now - timedelta(minutes=settings.grouping.LOOKBACK_MINUTES)
        return await self._orders.find_grouping_candidates(
            created_after,
            now,
            settings.grouping.CANDIDATE_LIMIT,
        )

    async def _write_group(self, orders: Sequence[Order], group_type: OrderType, solde: float) -> list[str]:
        """
        Условно помечает заказы группой в одной транзакции.

        Raises:
            ConcurrencyConflict: хотя бы один заказ уже не пригоден
        """
        order_ids = [order.id for order in orders]
        async with self._db.transaction() as conn:
            updated = await self._orders.mark_grouped(conn, order_ids, group_type, solde)
            if updated != len(order_ids):
                raise ConcurrencyConflict(
                    f"Группа {order_ids}: обновлено {updated} из {len(order_ids)}",
                    expected=len(order_ids),
                    actual=updated,
                )
        return order_ids

    async def form_group(
        self,
        orders: Sequence[Order],
        thresholds: Optional[GroupingThresholds] = None,
    ) -> Optional[GroupSummary]:
        """
        Формирует группу из 2 или 3 совместимых заказов.

        Args:
            orders: Заказы группы
            thresholds: Пороги (по умолчанию из конфигурации)

        Returns:
            GroupSummary или None, если заказы несовместимы
            или изменились параллельно (в том числе до записи)

        Raises:
            ValidationError: размер группы не 2 и не 3
        """
        group_type = GROUP_TYPE_BY_SIZE.get(len(orders))
        if group_type is None:
            raise ValidationError(f"Группа должна содержать 2 или 3 заказа, получено {len(orders)}")

        stale = [order.id for order in orders if not OrderStateMachine.is_groupable_state(order)]
        if stale:
            await log_info(f"Заказы уже не ожидают группировки: {', '.join(stale)}", type_msg=TypeMsg.DEBUG)
            return None

        if not is_group_compatible(orders, thresholds):
            return None

        solde = round(sum(solde_simple(order) for order in orders), 3)

        try:
            order_ids = await self._write_group(orders, group_type, solde)
        except ConcurrencyConflict as e:
            await log_warning(f"Группа не сформирована, повтор в следующем цикле: {e}")
            return None

        await log_info(
            f"Сформирована группа {group_type.value}: {', '.join(order_ids)} (сальдо {solde})",
            type_msg=TypeMsg.INFO,
        )
        return GroupSummary(grouped_orders=order_ids, solde=solde, group_type=group_type)

    async def detect_and_group_orders(self, now: Optional[datetime] = None) -> GroupingResult:
        """
        Один проход группировки по текущим кандидатам.

        Returns:
            GroupingResult с количеством групп и кандидатов
        """
        candidates = await self.find_grouping_candidates(now)
        result = GroupingResult(attempted=len(candidates))

        if len(candidates) < 2:
            await log_info("Недостаточно кандидатов для группировки", type_msg=TypeMsg.DEBUG)
            return result

        thresholds = get_thresholds()
        neighbours = build_compatibility_graph(candidates, thresholds)
        processed: set[int] = set()

        for size in (3, 2):
            for indexes in iter_cliques(neighbours, size):
                if processed.intersection(indexes):
                    continue
                summary = await self.form_group([candidates[i] for i in indexes], thresholds)
                if summary is None:
                    continue
                processed.update(indexes)
                result.groups.append(summary)

        result.grouped = len(result.groups)
        await log_info(
            f"Цикл группировки: {result.grouped} групп из {result.attempted} кандидатов",
            type_msg=TypeMsg.INFO if result.grouped else TypeMsg.DEBUG,
        )
        return result

    async def notify_group_formed(self, group: GroupSummary, lang: Optional[str] = None) -> int:
        """
        Уведомляет активных курьеров с push-токеном о новой группе.
        Ошибки отдельных получателей журналируются.

        Returns:
            Количество отправленных уведомлений
        """
        from src.config import settings

        if self._notifier is None:
            return 0

        try:
            recipients = await self._deliverers.list_push_recipients()
        except Exception as e:
            await log_error(f"Не удалось получить курьеров для уведомления о группе: {e}")
            return 0

        title = get_text("GROUP_FORMED_TITLE", lang)
        body = get_text(
            "GROUP_FORMED_BODY",
            lang,
            group_type=group.group_type.value,
            solde=f"{group.solde:.2f}",
            currency=settings.pricing.CURRENCY,
        )
        data = {
            "groupedOrderIds": ",".join(group.grouped_orders),
            "groupType": group.group_type.value,
            "solde": str(group.solde),
        }

        sent = 0
        for deliverer in recipients:
            try:
                if await self._notifier.send(deliverer.push_token, title, body, data):
                    sent += 1
            except Exception as e:
                await log_error(f"Ошибка уведомления курьера {deliverer.id}: {e}")

        await log_info(
            f"Уведомлено {sent} из {len(recipients)} курьеров о группе {group.group_type.value}",
            type_msg=TypeMsg.DEBUG,
        )
        return sent
