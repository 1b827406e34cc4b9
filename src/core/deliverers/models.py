# src/core/deliverers/models.py
"""
Модели курьеров и их дневных балансов.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.common.constants import DelivererStatus


class DailyBalance(BaseModel):
    """Дневной баланс курьера."""

    day: date
    solde_amigos: float = 0.0
    solde_annulation: float = 0.0
    paid: bool = False
    paid_at: Optional[datetime] = None


class Deliverer(BaseModel):
    """Модель курьера."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="ID курьера")
    name: Optional[str] = None
    status: DelivererStatus = DelivererStatus.ACTIVE
    active_orders_count: int = Field(0, ge=0, description="Активные заказы")
    push_token: Optional[str] = Field(None, description="Expo push token")
    daily_balances: list[DailyBalance] = Field(default_factory=list)

    def balance_for(self, day: date) -> Optional[DailyBalance]:
        """Баланс за указанный день или None."""
        return next((balance for balance in self.daily_balances if balance.day == day), None)
