# src/worker/base.py
"""
Базовый класс для периодических воркеров.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Optional

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.orders.models import utc_now


class PeriodicWorker(ABC):
    """
    Базовый класс воркера, выполняющего цикл с фиксированным интервалом.

    Первый цикл выполняется сразу после запуска. Остановка прекращает
    будущие циклы и дожидается завершения текущего, не прерывая его.
    """

    def __init__(
        self,
        interval_seconds: float,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Args:
            interval_seconds: Интервал между циклами
            clock: Источник текущего времени (для тестов)
        """
        self.interval_seconds = interval_seconds
        self._clock = clock or utc_now
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя воркера."""
        pass

    @abstractmethod
    async def run_cycle(self) -> Any:
        """Один цикл работы."""
        pass

    @property
    def is_running(self) -> bool:
        return self._running

    def now(self) -> datetime:
        return self._clock()

    async def start(self) -> None:
        """Запускает воркер (повторный вызов ничего не делает)."""
        if self._running:
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name=f"worker:{self.name}")
        await log_info(
            f"Воркер {self.name} запущен (интервал {self.interval_seconds} с)",
            type_msg=TypeMsg.INFO,
        )

    async def stop(self) -> None:
        """Останавливает воркер и ждёт завершения текущего цикла."""
        if not self._running:
            return

        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    async def _loop(self) -> None:
        while self._stop_event is not None and not self._stop_event.is_set():
            await self._safe_cycle()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def _safe_cycle(self) -> None:
        """Выполняет цикл; ошибка журналируется и не останавливает воркер."""
        try:
            await self.run_cycle()
        except Exception as e:
            await log_error(f"Ошибка в цикле воркера {self.name}: {e}", exc_info=True)
