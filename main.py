#!/usr/bin/env python3
# main.py
"""
Главная точка входа ядра доставки.
Запускает планировщик группировки заказов.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg
from src.worker.runner import run_scheduler


def setup_signal_handlers(shutdown_event: asyncio.Event) -> None:
    """Настраивает обработчики SIGINT и SIGTERM для graceful shutdown."""

    def signal_handler(sig: int) -> None:
        if not shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            shutdown_event.set()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def main() -> None:
    """Главная функция запуска."""
    setup_logging()
    shutdown_event = asyncio.Event()
    setup_signal_handlers(shutdown_event)

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION}: запуск планировщика группировки",
        type_msg=TypeMsg.INFO,
    )

    try:
        await run_scheduler(shutdown_event)
    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}")
        raise
    finally:
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1].lower() in ("--help", "-h"):
        print("Использование: python main.py  (планировщик группировки заказов)")
        sys.exit(0)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
