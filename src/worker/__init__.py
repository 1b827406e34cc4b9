# src/worker/__init__.py
"""
Фоновые воркеры: периодическая группировка заказов.
"""

from src.worker.base import PeriodicWorker
from src.worker.grouping import GroupingScheduler

__all__ = ["PeriodicWorker", "GroupingScheduler"]
