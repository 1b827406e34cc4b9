# src/core/geo/__init__.py
"""
Гео-утилиты: модели точек и расчёт расстояний.
"""

from src.core.geo.distance import EARTH_RADIUS_KM, calculate_distance, distance_between
from src.core.geo.models import DeliveryAddress, GeoPoint

__all__ = [
    "EARTH_RADIUS_KM",
    "calculate_distance",
    "distance_between",
    "DeliveryAddress",
    "GeoPoint",
]
