# src/core/pricing/models.py
"""
Модели ценовой конфигурации: зоны, города, маржа и дополнительные сборы.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from src.common.constants import (
    ADDITIONAL_FEE_KEYS,
    FEE_APPLIES_TO_ALL,
    MarginCategory,
    OrderType,
)


class Zone(BaseModel):
    """Ценовая зона по расстоянию [min_distance, max_distance)."""

    id: Optional[str] = None
    number: int = Field(..., ge=1, description="Номер зоны")
    min_distance: float = Field(0.0, ge=0.0, description="Нижняя граница, км (включительно)")
    max_distance: float = Field(..., gt=0.0, description="Верхняя граница, км (не включительно)")
    price: float = Field(0.0, ge=0.0, description="Тариф зоны")
    promo_price: Optional[float] = Field(None, ge=0.0, description="Промо-тариф")
    is_promo_active: bool = False
    min_garantie_a1: float = Field(0.0, ge=0.0)
    min_garantie_a2: float = Field(0.0, ge=0.0)
    min_garantie_a3: float = Field(0.0, ge=0.0)
    min_garantie_a4: float = Field(0.0, ge=0.0)

    def contains(self, distance_km: float) -> bool:
        return self.min_distance <= distance_km < self.max_distance

    def min_garantie_for(self, order_type: OrderType) -> float:
        """Минимальная гарантия курьеру для типа заказа."""
        return {
            OrderType.A1: self.min_garantie_a1,
            OrderType.A2: self.min_garantie_a2,
            OrderType.A3: self.min_garantie_a3,
            OrderType.A4: self.min_garantie_a4,
        }.get(order_type, self.min_garantie_a1)

    @property
    def tarif(self) -> float:
        """Действующий тариф: промо, если включено и не нулевое."""
        if self.is_promo_active and self.promo_price:
            return self.promo_price
        return self.price


def find_zone_for_distance(zones: list[Zone], distance_km: float) -> Optional[Zone]:
    """
    Находит зону, в диапазон которой попадает расстояние.
    При пересечении диапазонов побеждает зона с меньшим номером.
    """
    for zone in sorted(zones, key=lambda z: z.number):
        if zone.contains(distance_km):
            return zone
    return None


class City(BaseModel):
    """Город с множителем тарифа."""

    id: Optional[str] = None
    name: str
    multiplier: float = Field(1.0, gt=0.0)
    active_zones: list[int] = Field(default_factory=list)
    is_active: bool = True


class MarginConfig(BaseModel):
    """Маржа платформы для одной категории."""

    margin: float = Field(0.0, ge=0.0, description="Желаемая маржа M")
    minimum: float = Field(0.0, ge=0.0)
    maximum: float = Field(0.0, ge=0.0)

    @model_validator(mode="after")
    def check_bounds(self) -> "MarginConfig":
        if self.minimum > self.maximum:
            raise ValueError("minimum не может превышать maximum")
        return self


class MarginSettings(BaseModel):
    """Маржа по категориям C1..C3 (отсутствующие категории нулевые)."""

    C1: MarginConfig = Field(default_factory=MarginConfig)
    C2: MarginConfig = Field(default_factory=MarginConfig)
    C3: MarginConfig = Field(default_factory=MarginConfig)

    def for_category(self, category: MarginCategory) -> MarginConfig:
        return getattr(self, category.value)


class FeeLine(BaseModel):
    """Строка дополнительного сбора."""

    amount: float = Field(0.0, ge=0.0)
    description: str = ""
    applies_to: list[str] = Field(default_factory=list)

    def applies(self, *tags: str) -> bool:
        """Применим ли сбор к одной из меток (категория C1..C3 или тип A1..A4)."""
        return FEE_APPLIES_TO_ALL in self.applies_to or any(tag in self.applies_to for tag in tags)


def _default_fee_lines() -> dict[str, FeeLine]:
    return {
        "FRAIS_1": FeeLine(amount=0.15, description="Frais de service", applies_to=[MarginCategory.C1.value]),
        "FRAIS_2": FeeLine(amount=0.35, description="Frais de plateforme", applies_to=[FEE_APPLIES_TO_ALL]),
        "FRAIS_3": FeeLine(amount=0.35, description="Frais de traitement", applies_to=[FEE_APPLIES_TO_ALL]),
        "FRAIS_4": FeeLine(amount=0.0, description="Frais minimum", applies_to=[]),
        "FRAIS_5": FeeLine(amount=0.0, description="Frais supplémentaires", applies_to=[]),
    }


class AdditionalFeesConfig(BaseModel):
    """Дополнительные сборы FRAIS_1..FRAIS_5."""

    lines: dict[str, FeeLine] = Field(default_factory=_default_fee_lines)

    @model_validator(mode="after")
    def check_keys(self) -> "AdditionalFeesConfig":
        unknown = set(self.lines) - set(ADDITIONAL_FEE_KEYS)
        if unknown:
            raise ValueError(f"Неизвестные сборы: {sorted(unknown)}")
        return self

    def line(self, key: str) -> FeeLine:
        return self.lines.get(key) or FeeLine()

    @property
    def floor_fee(self) -> float:
        """Минимальный сбор frais00 (сумма FRAIS_4)."""
        return self.line("FRAIS_4").amount

    def applicable_total(self, *tags: str) -> float:
        """Сумма положительных сборов, применимых к категории или типу заказа."""
        return round(
            sum(line.amount for line in self.lines.values() if line.amount > 0 and line.applies(*tags)),
            3,
        )

    def breakdown(self, *tags: str) -> dict[str, float]:
        """Применимые сборы по строкам."""
        return {
            key: line.amount
            for key, line in sorted(self.lines.items())
            if line.amount > 0 and line.applies(*tags)
        }
