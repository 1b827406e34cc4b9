"""
Модуль отмены заказов.
"""

from src.core.cancellation.models import Cancellation, CancellationResult
from src.core.cancellation.repository import CancellationRepository
from src.core.cancellation.service import CancellationService, calculate_cancellation_solde

__all__ = [
    "Cancellation",
    "CancellationResult",
    "CancellationRepository",
    "CancellationService",
    "calculate_cancellation_solde",
]
