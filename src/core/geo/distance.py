# src/core/geo/distance.py
"""
Расстояние по поверхности Земли (формула гаверсинусов).
"""

from __future__ import annotations

import math
from typing import Optional

from src.core.geo.models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Вычисляет расстояние между двумя точками в километрах.

    Симметрична: d(a, b) == d(b, a), d(a, a) == 0.
    """
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_between(point_a: Optional[GeoPoint], point_b: Optional[GeoPoint]) -> Optional[float]:
    """
    Расстояние между двумя точками или None, если одна из них неизвестна.
    """
    if point_a is None or point_b is None:
        return None
    return calculate_distance(point_a.latitude, point_a.longitude, point_b.latitude, point_b.longitude)
