# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секретные данные переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "delivery_core"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    DEFAULT_LANGUAGE: str = "fr"
    TIMEZONE: str = "Africa/Tunis"


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_FORMAT: str = "colored"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10485760


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "delivery"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 5
    DB_MAX_POOL_SIZE: int = 20
    DB_COMMAND_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "delivery"
    REDIS_MAX_CONNECTIONS: int = 20

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class GroupingSettings(BaseModel):
    """
    Пороги группировки заказов.
    Общие для планировщика и проверки заказов курьером.
    """
    MAX_PROVIDER_DISTANCE_KM: float = 6.0
    MAX_CLIENT_DISTANCE_KM: float = 3.0
    LOOKBACK_MINUTES: int = 20
    CANDIDATE_LIMIT: int = 500


class SchedulerSettings(BaseModel):
    """Настройки планировщика группировки."""
    INTERVAL_SECONDS: float = 60.0
    USE_REDIS_LOCK: bool = False
    LOCK_TTL_SECONDS: int = 55
    NOTIFY_GROUPS: bool = True


class ModeMultipliers(BaseModel):
    """Множители режима оплаты: доставка, выплата партнёру, цена для клиента."""
    delivery: float = 1.0
    partner: float = 1.0
    client: float = 1.0


def _default_mode_multipliers() -> dict[str, ModeMultipliers]:
    return {
        "Mode_1": ModeMultipliers(delivery=1.0, partner=1.0, client=1.0),
        "Mode_2": ModeMultipliers(delivery=1.3, partner=1.1, client=1.15),
        "Mode_3": ModeMultipliers(delivery=0.85, partner=0.95, client=0.9),
        "Mode_4": ModeMultipliers(delivery=1.7, partner=1.2, client=1.25),
    }


class PricingSettings(BaseModel):
    """Настройки ценообразования."""
    CURRENCY: str = "TND"
    DEFAULT_CITY_MULTIPLIER: float = 1.0
    AMIGOS_BONUS_ENABLED: bool = False
    AMIGOS_BONUS_AMOUNT: float = 0.0
    MODE_MULTIPLIERS: dict[str, ModeMultipliers] = Field(default_factory=_default_mode_multipliers)

    @model_validator(mode="after")
    def fill_missing_modes(self) -> "PricingSettings":
        """Дополняет отсутствующие режимы значениями по умолчанию."""
        defaults = _default_mode_multipliers()
        for mode, multipliers in defaults.items():
            self.MODE_MULTIPLIERS.setdefault(mode, multipliers)
        return self


class CancellationSettings(BaseModel):
    """Настройки отмены заказов."""
    GRACE_WINDOW_SECONDS: int = 60
    COURSE_SHARE: float = 0.3
    CLIENT_BLOCK_REASON: str = "Client absence - account blocked by admin"


class DelivererSettings(BaseModel):
    """Настройки курьеров."""
    MAX_ACTIVE_ORDERS: int = 3


class NotificationSettings(BaseModel):
    """Настройки push-уведомлений."""
    PUSH_ENABLED: bool = True
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    PUSH_TIMEOUT_SECONDS: float = 10.0


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    system: SystemSettings = Field(default_factory=SystemSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    grouping: GroupingSettings = Field(default_factory=GroupingSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    cancellation: CancellationSettings = Field(default_factory=CancellationSettings)
    deliverer: DelivererSettings = Field(default_factory=DelivererSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)

    @classmethod
    def from_config_json(cls) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и адреса инфраструктуры переопределяются из окружения.
        """
        config_data = load_config_json()

        # Ключи, начинающиеся с _comment_, служат комментариями
        data = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "delivery_core"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", True),
                ENVIRONMENT=os.getenv("ENVIRONMENT", data.get("ENVIRONMENT", "development")),
                DEFAULT_LANGUAGE=data.get("DEFAULT_LANGUAGE", "fr"),
                TIMEZONE=data.get("TIMEZONE", "Africa/Tunis"),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=data.get("LOG_LEVEL", "DEBUG"),
                LOG_FORMAT=data.get("LOG_FORMAT", "colored"),
                LOG_TO_FILE=data.get("LOG_TO_FILE", False),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "delivery")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 5),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 20),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 60),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 1.0),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", data.get("REDIS_PORT", 6379))),
                REDIS_DB=data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=data.get("REDIS_NAMESPACE", "delivery"),
                REDIS_MAX_CONNECTIONS=data.get("REDIS_MAX_CONNECTIONS", 20),
            ),
            grouping=GroupingSettings(
                MAX_PROVIDER_DISTANCE_KM=data.get("MAX_PROVIDER_DISTANCE_KM", 6.0),
                MAX_CLIENT_DISTANCE_KM=data.get("MAX_CLIENT_DISTANCE_KM", 3.0),
                LOOKBACK_MINUTES=data.get("GROUPING_LOOKBACK_MINUTES", 20),
                CANDIDATE_LIMIT=data.get("GROUPING_CANDIDATE_LIMIT", 500),
            ),
            scheduler=SchedulerSettings(
                INTERVAL_SECONDS=data.get("SCHEDULER_INTERVAL_SECONDS", 60.0),
                USE_REDIS_LOCK=data.get("SCHEDULER_USE_REDIS_LOCK", False),
                LOCK_TTL_SECONDS=data.get("SCHEDULER_LOCK_TTL_SECONDS", 55),
                NOTIFY_GROUPS=data.get("SCHEDULER_NOTIFY_GROUPS", True),
            ),
            pricing=PricingSettings(
                CURRENCY=data.get("CURRENCY", "TND"),
                DEFAULT_CITY_MULTIPLIER=data.get("DEFAULT_CITY_MULTIPLIER", 1.0),
                AMIGOS_BONUS_ENABLED=data.get("AMIGOS_BONUS_ENABLED", False),
                AMIGOS_BONUS_AMOUNT=data.get("AMIGOS_BONUS_AMOUNT", 0.0),
                MODE_MULTIPLIERS=data.get("MODE_MULTIPLIERS", _default_mode_multipliers()),
            ),
            cancellation=CancellationSettings(
                GRACE_WINDOW_SECONDS=data.get("CANCELLATION_GRACE_WINDOW_SECONDS", 60),
                COURSE_SHARE=data.get("CANCELLATION_COURSE_SHARE", 0.3),
                CLIENT_BLOCK_REASON=data.get(
                    "CLIENT_BLOCK_REASON", "Client absence - account blocked by admin"
                ),
            ),
            deliverer=DelivererSettings(
                MAX_ACTIVE_ORDERS=data.get("MAX_ACTIVE_ORDERS", 3),
            ),
            notifications=NotificationSettings(
                PUSH_ENABLED=data.get("PUSH_ENABLED", True),
                EXPO_PUSH_URL=data.get("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send"),
                PUSH_TIMEOUT_SECONDS=data.get("PUSH_TIMEOUT_SECONDS", 10.0),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Перед чтением config.json подгружает .env из корня проекта.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
