"""
Модуль клиентов.
"""

from src.core.clients.models import ClientBlockStatus
from src.core.clients.repository import ClientRepository

__all__ = [
    "ClientBlockStatus",
    "ClientRepository",
]
