# tests/core/test_push_notifications.py
"""
Тесты сервиса push-уведомлений Expo.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.core.notifications.service import PushNotificationService, is_expo_push_token


TOKEN = "ExponentPushToken[abc123]"


def make_response(payload: Any, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestExpoToken:
    """Тесты формата токена."""

    def test_valid_token(self) -> None:
        assert is_expo_push_token(TOKEN) is True

    @pytest.mark.parametrize("token", [None, "", "abc123", "ExponentPushToken[abc", "fcm:token"])
    def test_invalid_token(self, token: Any) -> None:
        assert is_expo_push_token(token) is False


class TestPushNotificationService:
    """Тесты отправки уведомлений."""

    @pytest.fixture
    def token_store(self) -> MagicMock:
        store = MagicMock()
        store.clear_push_token = AsyncMock(return_value=1)
        return store

    @pytest.mark.asyncio
    async def test_send_success(self) -> None:
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock(return_value=make_response({"data": {"status": "ok", "id": "ticket-1"}}))

            service = PushNotificationService(enabled=True)
            result = await service.send(TOKEN, "Titre", "Corps", {"groupType": "A2"})

        assert result is True
        url = client.post.await_args.args[0]
        message = client.post.await_args.kwargs["json"]
        assert url == "https://exp.host/--/api/v2/push/send"
        assert message == {
            "to": TOKEN,
            "sound": "default",
            "title": "Titre",
            "body": "Corps",
            "data": {"groupType": "A2"},
        }

    @pytest.mark.asyncio
    async def test_invalid_token_not_sent(self) -> None:
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock()

            service = PushNotificationService(enabled=True)
            result = await service.send("bad-token", "Titre", "Corps")

        assert result is False
        client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled(self) -> None:
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock()

            service = PushNotificationService(enabled=False)
            result = await service.send(TOKEN, "Titre", "Corps")

        assert result is False
        client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_device_not_registered_clears_token(self, token_store: MagicMock) -> None:
        payload = {"data": {"status": "error", "message": "gone", "details": {"error": "DeviceNotRegistered"}}}
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock(return_value=make_response(payload))

            service = PushNotificationService(token_store=token_store, enabled=True)
            result = await service.send(TOKEN, "Titre", "Corps")

        assert result is False
        token_store.clear_push_token.assert_awaited_once_with(TOKEN)

    @pytest.mark.asyncio
    async def test_other_ticket_error_keeps_token(self, token_store: MagicMock) -> None:
        payload = {"data": [{"status": "error", "details": {"error": "MessageRateExceeded"}}]}
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock(return_value=make_response(payload))

            service = PushNotificationService(token_store=token_store, enabled=True)
            result = await service.send(TOKEN, "Titre", "Corps")

        assert result is False
        token_store.clear_push_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_http_error_status(self) -> None:
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock(return_value=make_response({"errors": []}, status_code=500))

            service = PushNotificationService(enabled=True)
            result = await service.send(TOKEN, "Titre", "Corps")

        assert result is False

    @pytest.mark.asyncio
    async def test_transport_error_is_not_raised(self) -> None:
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

            service = PushNotificationService(enabled=True)
            result = await service.send(TOKEN, "Titre", "Corps")

        assert result is False

    @pytest.mark.asyncio
    async def test_send_many_counts_successes(self) -> None:
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.post = AsyncMock(return_value=make_response({"data": {"status": "ok"}}))

            service = PushNotificationService(enabled=True)
            sent = await service.send_many([TOKEN, "bad-token", "ExponentPushToken[xyz]"], "Titre", "Corps")

        assert sent == 2
        assert client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        with patch("src.core.notifications.service.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.aclose = AsyncMock()

            service = PushNotificationService(enabled=True)
            await service.close()

        client.aclose.assert_awaited_once()
