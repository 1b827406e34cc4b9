# src/core/clients/models.py
"""
Модели клиентов.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ClientBlockStatus(BaseModel):
    """Статус блокировки клиента."""

    is_blocked: bool = False
    reason: Optional[str] = None
    blocked_at: Optional[datetime] = None
