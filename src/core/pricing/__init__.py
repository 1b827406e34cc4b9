"""
Домен ценообразования: зоны, маржа, сборы, сальдо и вознаграждение курьера.
"""

from src.core.pricing.models import (
    AdditionalFeesConfig,
    City,
    FeeLine,
    MarginConfig,
    MarginSettings,
    Zone,
    find_zone_for_distance,
)
from src.core.pricing.repository import PricingConfigRepository

__all__ = [
    "AdditionalFeesConfig",
    "City",
    "FeeLine",
    "MarginConfig",
    "MarginSettings",
    "Zone",
    "find_zone_for_distance",
    "PricingConfigRepository",
]
