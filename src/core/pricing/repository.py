# src/core/pricing/repository.py
"""
Репозиторий ценовой конфигурации (зоны, города, маржа, сборы).
"""

from __future__ import annotations

from typing import Optional

from asyncpg import Record

from src.common.exceptions import ConfigurationError
from src.core.pricing.models import (
    AdditionalFeesConfig,
    City,
    FeeLine,
    MarginConfig,
    MarginSettings,
    Zone,
)
from src.infra.database import DatabaseManager


_ZONE_COLUMNS = """
    id, number, min_distance, max_distance, price, promo_price, is_promo_active,
    min_garantie_a1, min_garantie_a2, min_garantie_a3, min_garantie_a4
"""


class PricingConfigRepository:
    """Чтение ценовой конфигурации из БД."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_zone(self, zone_id: str) -> Optional[Zone]:
        """Получает зону по ID."""
        row = await self._db.fetchrow(f"SELECT {_ZONE_COLUMNS} FROM zones WHERE id = $1", zone_id)
        return self._row_to_zone(row) if row else None

    async def get_city_for_zone(self, zone_number: int) -> Optional[City]:
        """Находит активный город, в котором включена зона."""
        row = await self._db.fetchrow(
            """
            SELECT id, name, multiplier, active_zones, is_active
            FROM cities
            WHERE is_active = TRUE AND $1 = ANY(active_zones)
            ORDER BY name ASC
            LIMIT 1
            """,
            zone_number,
        )
        if row is None:
            return None
        return City(
            id=str(row["id"]),
            name=row["name"],
            multiplier=float(row["multiplier"]),
            active_zones=list(row["active_zones"] or []),
            is_active=row["is_active"],
        )

    async def get_margin_settings(self) -> MarginSettings:
        """
        Активные настройки маржи по категориям.

        Raises:
            ConfigurationError: если активных настроек нет
        """
        rows = await self._db.fetch(
            "SELECT category, margin, minimum, maximum FROM margin_settings WHERE is_active = TRUE"
        )
        if not rows:
            raise ConfigurationError("Активные настройки маржи не найдены")

        configs = {
            row["category"]: MarginConfig(
                margin=float(row["margin"]),
                minimum=float(row["minimum"]),
                maximum=float(row["maximum"]),
            )
            for row in rows
        }
        return MarginSettings(**configs)

    async def get_additional_fees(self) -> AdditionalFeesConfig:
        """
        Активные дополнительные сборы.

        Raises:
            ConfigurationError: если активных сборов нет
        """
        rows = await self._db.fetch(
            "SELECT code, amount, description, applies_to FROM additional_fees WHERE is_active = TRUE"
        )
        if not rows:
            raise ConfigurationError("Активные дополнительные сборы не найдены")

        return AdditionalFeesConfig(
            lines={
                row["code"]: FeeLine(
                    amount=float(row["amount"]),
                    description=row["description"] or "",
                    applies_to=list(row["applies_to"] or []),
                )
                for row in rows
            }
        )

    @staticmethod
    def _row_to_zone(row: Record) -> Zone:
        return Zone(
            id=str(row["id"]),
            number=row["number"],
            min_distance=float(row["min_distance"]),
            max_distance=float(row["max_distance"]),
            price=float(row["price"]),
            promo_price=float(row["promo_price"]) if row["promo_price"] is not None else None,
            is_promo_active=bool(row["is_promo_active"]),
            min_garantie_a1=float(row["min_garantie_a1"] or 0),
            min_garantie_a2=float(row["min_garantie_a2"] or 0),
            min_garantie_a3=float(row["min_garantie_a3"] or 0),
            min_garantie_a4=float(row["min_garantie_a4"] or 0),
        )
