# src/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними сервисами: PostgreSQL и Redis.
"""

from src.infra.database import DatabaseManager, affected_rows, get_db
from src.infra.redis_client import RedisClient, get_redis

__all__ = [
    "DatabaseManager",
    "affected_rows",
    "get_db",
    "RedisClient",
    "get_redis",
]
