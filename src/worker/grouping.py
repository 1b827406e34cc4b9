# src/worker/grouping.py
"""
Планировщик группировки заказов.

Каждый цикл: снятие отложенного старта с заказов, один проход
группировки, фоновые уведомления о новых группах.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Callable, Optional

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.grouping.service import GroupingResult, GroupingService, GroupSummary
from src.core.orders.repository import OrderRepository
from src.infra.redis_client import RedisClient
from src.worker.base import PeriodicWorker


LOCK_NAME = "grouping_scheduler"


class GroupingScheduler(PeriodicWorker):
    """
    Периодический запуск группировки.

    Циклы не пересекаются: внутри процесса это гарантирует asyncio.Lock,
    между процессами (если включено) блокировка в Redis. Цикл, заставший
    блокировку занятой, пропускается.
    """

    def __init__(
        self,
        grouping_service: GroupingService,
        order_repository: OrderRepository,
        interval_seconds: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
        redis: Optional[RedisClient] = None,
        use_redis_lock: Optional[bool] = None,
        lock_ttl_seconds: Optional[int] = None,
        notify_groups: Optional[bool] = None,
    ) -> None:
        from src.config import settings

        scheduler = settings.scheduler
        super().__init__(
            interval_seconds=interval_seconds if interval_seconds is not None else scheduler.INTERVAL_SECONDS,
            clock=clock,
        )
        self._service = grouping_service
        self._orders = order_repository
        self._redis = redis
        self._use_redis_lock = scheduler.USE_REDIS_LOCK if use_redis_lock is None else use_redis_lock
        self._lock_ttl = lock_ttl_seconds or scheduler.LOCK_TTL_SECONDS
        self._notify_groups = scheduler.NOTIFY_GROUPS if notify_groups is None else notify_groups

        self._cycle_lock = asyncio.Lock()
        self._notification_tasks: set[asyncio.Task] = set()
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[GroupingResult] = None
        self.last_error: Optional[str] = None

    @property
    def name(self) -> str:
        return "grouping_scheduler"

    # =========================================================================
    # ЦИКЛ
    # =========================================================================

    async def run_cycle(self) -> Optional[GroupingResult]:
        """
        Один цикл группировки.

        Returns:
            Результат группировки или None, если цикл пропущен или упал
        """
        if self._cycle_lock.locked():
            await log_info("Предыдущий цикл группировки ещё выполняется, пропуск", type_msg=TypeMsg.DEBUG)
            return None

        async with self._cycle_lock:
            token = await self._acquire_shared_lock()
            if self._use_redis_lock and self._redis is not None and token is None:
                return None

            try:
                return await self._run_locked()
            except Exception as e:
                self.last_error = str(e)
                await log_error(f"Ошибка цикла группировки: {e}", exc_info=True)
                return None
            finally:
                if token is not None:
                    await self._release_shared_lock(token)

    async def _run_locked(self) -> GroupingResult:
        now = self.now()
        await self.release_delayed_orders(now)

        result = await self._service.detect_and_group_orders(now)
        self.last_run_at = now
        self.last_result = result
        self.last_error = None

        if self._notify_groups:
            for group in result.groups:
                self._spawn_notification(group)
        return result

    async def release_delayed_orders(self, now: datetime) -> int:
        """Снимает отложенный старт с заказов; ошибка не прерывает цикл."""
        try:
            released = await self._orders.release_delayed_orders(now)
        except Exception as e:
            await log_error(f"Ошибка снятия отложенного старта: {e}")
            return 0
        if released:
            await log_info(f"Снят отложенный старт с {released} заказов", type_msg=TypeMsg.INFO)
        return released

    # =========================================================================
    # БЛОКИРОВКА МЕЖДУ ПРОЦЕССАМИ
    # =========================================================================

    async def _acquire_shared_lock(self) -> Optional[str]:
        if not self._use_redis_lock or self._redis is None:
            return None
        try:
            token = await self._redis.acquire_lock(LOCK_NAME, self._lock_ttl)
        except Exception as e:
            await log_error(f"Не удалось получить блокировку группировки в Redis: {e}")
            return None
        if token is None:
            await log_info("Группировка выполняется другим процессом, пропуск", type_msg=TypeMsg.DEBUG)
        return token

    async def _release_shared_lock(self, token: str) -> None:
        try:
            await self._redis.release_lock(LOCK_NAME, token)
        except Exception as e:
            await log_error(f"Не удалось снять блокировку группировки в Redis: {e}")

    # =========================================================================
    # УВЕДОМЛЕНИЯ
    # =========================================================================

    def _spawn_notification(self, group: GroupSummary) -> None:
        task = asyncio.create_task(self._notify(group))
        self._notification_tasks.add(task)
        task.add_done_callback(self._notification_tasks.discard)

    async def _notify(self, group: GroupSummary) -> None:
        try:
            await self._service.notify_group_formed(group)
        except Exception as e:
            await log_error(f"Ошибка уведомления о группе {group.grouped_orders}: {e}")

    async def stop(self) -> None:
        """Останавливает планировщик и дожидается отправки уведомлений."""
        await super().stop()
        if self._notification_tasks:
            await asyncio.gather(*self._notification_tasks, return_exceptions=True)

    def get_status(self) -> dict[str, Any]:
        """Состояние планировщика."""
        last_result = None
        if self.last_result is not None:
            last_result = {
                "grouped": self.last_result.grouped,
                "attempted": self.last_result.attempted,
            }
        return {
            "running": self.is_running,
            "interval_seconds": self.interval_seconds,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": last_result,
            "last_error": self.last_error,
            "pending_notifications": len(self._notification_tasks),
        }
