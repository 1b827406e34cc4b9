# src/core/geo/models.py
"""
Гео-модели.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class GeoPoint(BaseModel):
    """Точка на карте (WGS84)."""

    latitude: float = Field(..., ge=-90.0, le=90.0, description="Широта")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Долгота")


class DeliveryAddress(GeoPoint):
    """Адрес доставки клиента."""

    street: Optional[str] = Field(None, description="Улица")
    city: Optional[str] = Field(None, description="Город")
