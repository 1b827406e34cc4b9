# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")

from src.core.deliverers.models import Deliverer
from src.core.orders.models import Order
from tests.factories import FIXED_NOW, build_order


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture(scope="session")
def lang_dict_path(project_root: Path) -> Path:
    """Путь к файлу локализации."""
    return project_root / "config" / "lang_dict.json"


@pytest.fixture
def mock_lang_dict() -> dict[str, dict[str, str]]:
    """Мок словаря локализации для тестов."""
    return {
        "WELCOME": {
            "fr": "Bienvenue !",
            "en": "Welcome!",
            "ar": "مرحبا",
        },
        "GREETING": {
            "fr": "Bonjour, {name} !",
            "en": "Hello, {name}!",
            "ar": "مرحبا، {name}",
        },
    }


@pytest.fixture
def temp_lang_dict_file(tmp_path: Path, mock_lang_dict: dict[str, dict[str, str]]) -> Path:
    """Создаёт временный файл локализации."""
    lang_file = tmp_path / "lang_dict.json"
    lang_file.write_text(json.dumps(mock_lang_dict, ensure_ascii=False, indent=2), encoding="utf-8")
    return lang_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

class FakeTransaction:
    """Асинхронный контекст транзакции, отдающий мок соединения."""

    def __init__(self, conn: Any) -> None:
        self.conn = conn
        self.exited_with: Any = None

    async def __aenter__(self) -> Any:
        return self.conn

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        self.exited_with = exc_type
        return False


@pytest.fixture
def mock_conn() -> AsyncMock:
    """Мок соединения asyncpg внутри транзакции."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 1")
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> MagicMock:
    """Мок менеджера базы данных с транзакциями."""
    db = MagicMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 0")
    db.fetchval = AsyncMock(return_value=None)
    db.transaction = MagicMock(side_effect=lambda: FakeTransaction(mock_conn))
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.acquire_lock = AsyncMock(return_value="lock-token")
    redis.release_lock = AsyncMock(return_value=True)
    return redis


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def order_factory() -> Callable[..., Order]:
    """Фабрика заказов с координатами."""
    return build_order


@pytest.fixture
def sample_order() -> Order:
    """Один ожидающий заказ."""
    return build_order()


@pytest.fixture
def sample_deliverer() -> Deliverer:
    """Свободный курьер без активных заказов."""
    return Deliverer(id="deliverer-1", name="Sami", push_token="ExponentPushToken[abc123]")


@pytest.fixture
def fixed_now() -> datetime:
    """Фиксированный момент времени для тестов."""
    return FIXED_NOW
