"""
Модуль курьеров: модели, репозиторий, проверки и сервис.
"""

from src.core.deliverers.models import DailyBalance, Deliverer
from src.core.deliverers.repository import DelivererRepository

__all__ = [
    "DailyBalance",
    "Deliverer",
    "DelivererRepository",
]
