# src/worker/runner.py
"""
Сборка сервисов и запуск планировщика группировки.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from src.common.constants import TypeMsg
from src.common.localization import validate_lang_dict
from src.common.logger import log_error, log_info, log_warning
from src.core.cancellation.repository import CancellationRepository
from src.core.cancellation.service import CancellationService
from src.core.clients.repository import ClientRepository
from src.core.deliverers.repository import DelivererRepository
from src.core.deliverers.service import DelivererService
from src.core.grouping.service import GroupingService
from src.core.notifications.service import PushNotificationService
from src.core.orders.repository import OrderRepository
from src.core.pricing.advanced_fees import AdvancedFeeCalculator
from src.core.pricing.balance import BalanceCalculator
from src.core.pricing.remuneration import RemunerationService
from src.core.pricing.repository import PricingConfigRepository
from src.infra.database import DatabaseManager, close_db, get_db, init_db
from src.infra.redis_client import RedisClient, close_redis, get_redis, init_redis
from src.worker.grouping import GroupingScheduler


@dataclass
class Services:
    """Собранные сервисы ядра."""
    orders: OrderRepository
    deliverers: DelivererRepository
    notifier: PushNotificationService
    remuneration: RemunerationService
    advanced_fees: AdvancedFeeCalculator
    balance: BalanceCalculator
    deliverer_service: DelivererService
    cancellation: CancellationService
    grouping: GroupingService
    scheduler: GroupingScheduler


def build_services(db: DatabaseManager, redis: Optional[RedisClient] = None) -> Services:
    """
    Создаёт репозитории и сервисы поверх общих подключений.

    Args:
        db: Менеджер БД
        redis: Redis клиент (для блокировки планировщика)
    """
    orders = OrderRepository(db)
    deliverers = DelivererRepository(db)
    pricing = PricingConfigRepository(db)

    notifier = PushNotificationService(token_store=deliverers)
    remuneration = RemunerationService(pricing)
    deliverer_service = DelivererService(db, orders, deliverers)
    grouping = GroupingService(db, orders, deliverers, notifier)

    return Services(
        orders=orders,
        deliverers=deliverers,
        notifier=notifier,
        remuneration=remuneration,
        advanced_fees=AdvancedFeeCalculator(pricing, remuneration, orders),
        balance=BalanceCalculator(pricing),
        deliverer_service=deliverer_service,
        cancellation=CancellationService(
            db,
            orders,
            deliverers,
            CancellationRepository(db),
            ClientRepository(db),
            remuneration,
            deliverer_service,
        ),
        grouping=grouping,
        scheduler=GroupingScheduler(grouping, orders, redis=redis),
    )


async def check_startup(db: DatabaseManager, redis: Optional[RedisClient] = None) -> None:
    """
    Проверяет подключения и словарь локализации перед запуском.

    Raises:
        RuntimeError: PostgreSQL или Redis не отвечает
    """
    if not await db.health_check():
        raise RuntimeError("PostgreSQL не отвечает")
    if redis is not None and not await redis.health_check():
        raise RuntimeError("Redis не отвечает")

    for problem in validate_lang_dict():
        await log_warning(f"Словарь локализации: {problem}")


async def run_scheduler(stop_event: asyncio.Event, init_infra: bool = True) -> None:
    """
    Запускает планировщик группировки до сигнала остановки.

    Args:
        stop_event: Событие остановки (выставляется обработчиком сигналов)
        init_infra: Если True, подключает, проверяет и закрывает БД и Redis
    """
    from src.config import settings

    if init_infra:
        await init_db()
        if settings.scheduler.USE_REDIS_LOCK:
            await init_redis()

    redis = get_redis() if settings.scheduler.USE_REDIS_LOCK else None
    services = build_services(get_db(), redis)

    try:
        if init_infra:
            await check_startup(get_db(), redis)
        await services.scheduler.start()
        await stop_event.wait()
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка планировщика: {e}", exc_info=True)
        raise
    finally:
        await services.scheduler.stop()
        await services.notifier.close()

        if init_infra:
            if settings.scheduler.USE_REDIS_LOCK:
                await close_redis()
            await close_db()

        await log_info("Планировщик группировки остановлен", type_msg=TypeMsg.INFO)
