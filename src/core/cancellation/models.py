# src/core/cancellation/models.py
"""
Модели отмены заказов.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.common.constants import CancellationType, OrderType


class Cancellation(BaseModel):
    """Запись об отмене. Создаётся один раз и не изменяется."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    order_id: str
    deliverer_id: Optional[str] = None
    type: CancellationType
    solde: float = 0.0
    mode: OrderType = OrderType.A1
    reason: Optional[str] = None
    created_at: datetime


@dataclass
class CancellationResult:
    """Результат попытки отмены."""
    success: bool
    message: str
    cancellation_type: Optional[CancellationType] = None
    solde: float = 0.0
    client_blocked: bool = False
