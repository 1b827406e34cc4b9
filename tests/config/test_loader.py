# tests/config/test_loader.py
"""
Тесты загрузчика конфигурации.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.loader import (
    DatabaseSettings,
    PricingSettings,
    RedisSettings,
    Settings,
    get_config_path,
    load_config_json,
)


class TestConfigFile:
    """Тесты файла config.json."""

    def test_config_path(self, config_path: Path) -> None:
        assert get_config_path() == config_path
        assert config_path.exists()

    def test_comments_are_plain_keys(self) -> None:
        data = load_config_json()
        assert "_comment_grouping" in data


class TestSettings:
    """Тесты сборки настроек из config.json."""

    @pytest.fixture
    def settings(self) -> Settings:
        return Settings.from_config_json()

    def test_grouping_thresholds(self, settings: Settings) -> None:
        assert settings.grouping.MAX_PROVIDER_DISTANCE_KM == 6.0
        assert settings.grouping.MAX_CLIENT_DISTANCE_KM == 3.0
        assert settings.grouping.LOOKBACK_MINUTES == 20
        assert settings.grouping.CANDIDATE_LIMIT == 500

    def test_scheduler(self, settings: Settings) -> None:
        assert settings.scheduler.INTERVAL_SECONDS == 60
        assert settings.scheduler.USE_REDIS_LOCK is False

    def test_pricing(self, settings: Settings) -> None:
        assert settings.pricing.CURRENCY == "TND"
        assert settings.pricing.MODE_MULTIPLIERS["Mode_4"].delivery == 1.7
        assert settings.pricing.MODE_MULTIPLIERS["Mode_3"].client == 0.9

    def test_cancellation_and_deliverer(self, settings: Settings) -> None:
        assert settings.cancellation.GRACE_WINDOW_SECONDS == 60
        assert settings.cancellation.COURSE_SHARE == 0.3
        assert settings.deliverer.MAX_ACTIVE_ORDERS == 3

    def test_env_overrides_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.internal")
        monkeypatch.setenv("REDIS_PORT", "6380")

        settings = Settings.from_config_json()

        assert settings.database.DB_HOST == "db.internal"
        assert settings.redis.REDIS_PORT == 6380


class TestSections:
    """Тесты отдельных секций."""

    def test_dsn(self) -> None:
        db = DatabaseSettings(DB_USER="u", DB_PASSWORD="p", DB_HOST="h", DB_PORT=5433, DB_NAME="d")
        assert db.dsn == "postgresql://u:p@h:5433/d"

    def test_password_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PASSWORD", "secret")
        assert DatabaseSettings(DB_PASSWORD="").DB_PASSWORD == "secret"

    def test_redis_url(self) -> None:
        assert RedisSettings(REDIS_PASSWORD="pw").url == "redis://:pw@localhost:6379/0"

    def test_redis_url_without_password(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("REDIS_PASSWORD", raising=False)
        assert RedisSettings().url == "redis://localhost:6379/0"

    def test_missing_modes_filled(self) -> None:
        pricing = PricingSettings(MODE_MULTIPLIERS={"Mode_2": {"delivery": 2.0, "partner": 1.0, "client": 1.0}})

        assert pricing.MODE_MULTIPLIERS["Mode_2"].delivery == 2.0
        assert pricing.MODE_MULTIPLIERS["Mode_4"].delivery == 1.7
