# src/core/notifications/service.py
"""
Сервис push-уведомлений.
Отправляет уведомления курьерам через Expo Push API.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

import httpx

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info, log_warning


EXPO_TOKEN_PREFIX = "ExponentPushToken["
DEVICE_NOT_REGISTERED = "DeviceNotRegistered"


class PushTokenStore(Protocol):
    """Хранилище push-токенов (очистка недействительных)."""

    async def clear_push_token(self, push_token: str) -> int: ...


def is_expo_push_token(token: Optional[str]) -> bool:
    """Токен имеет формат ExponentPushToken[...]."""
    return bool(token) and token.startswith(EXPO_TOKEN_PREFIX) and token.endswith("]")


def _ticket_error(payload: Any) -> Optional[str]:
    """Код ошибки из ответа Expo ({"data": {"status": "error", "details": {"error": ...}}})."""
    if not isinstance(payload, dict):
        return None
    ticket = payload.get("data")
    if isinstance(ticket, list):
        ticket = ticket[0] if ticket else None
    if not isinstance(ticket, dict) or ticket.get("status") != "error":
        return None
    details = ticket.get("details") or {}
    return details.get("error") or ticket.get("message") or "unknown"


class PushNotificationService:
    """
    Транспорт push-уведомлений.

    Отправка никогда не выбрасывает исключений: ошибки журналируются,
    а результат возвращается как bool.
    """

    def __init__(
        self,
        token_store: Optional[PushTokenStore] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        """
        Args:
            token_store: Хранилище для очистки недействительных токенов
            url: Адрес Expo Push API (по умолчанию из конфига)
            timeout: Таймаут HTTP-запроса, секунды
            enabled: Включена ли отправка
        """
        from src.config import settings

        self._token_store = token_store
        self._url = url or settings.notifications.EXPO_PUSH_URL
        self._enabled = settings.notifications.PUSH_ENABLED if enabled is None else enabled
        self._client = httpx.AsyncClient(timeout=timeout or settings.notifications.PUSH_TIMEOUT_SECONDS)

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def _cleanup_token(self, token: str) -> None:
        if self._token_store is None:
            return
        try:
            removed = await self._token_store.clear_push_token(token)
            if removed:
                await log_info(f"Недействительный push-токен удалён: {token}", type_msg=TypeMsg.DEBUG)
        except Exception as e:
            await log_error(f"Ошибка очистки push-токена {token}: {e}")

    async def send(
        self,
        recipient_token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Отправляет одно уведомление.

        Args:
            recipient_token: Expo push-токен получателя
            title: Заголовок
            body: Текст
            data: Структурированные данные для приложения

        Returns:
            True если Expo принял уведомление
        """
        if not self._enabled:
            await log_info("Push-уведомления отключены", type_msg=TypeMsg.DEBUG)
            return False

        if not is_expo_push_token(recipient_token):
            await log_warning(f"Неверный формат push-токена: {recipient_token}")
            return False

        message = {
            "to": recipient_token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": data or {},
        }

        try:
            response = await self._client.post(
                self._url,
                json=message,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
            payload = response.json()
        except Exception as e:
            await log_error(f"Ошибка отправки push-уведомления: {e}")
            return False

        error = _ticket_error(payload)
        if error is None and response.status_code >= 400:
            error = f"HTTP {response.status_code}"

        if error is not None:
            await log_warning(f"Expo отклонил уведомление для {recipient_token}: {error}")
            if error == DEVICE_NOT_REGISTERED:
                await self._cleanup_token(recipient_token)
            return False

        await log_info(f"Push-уведомление отправлено: {title}", type_msg=TypeMsg.DEBUG)
        return True

    async def send_many(
        self,
        recipient_tokens: Sequence[str],
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> int:
        """
        Отправляет уведомление нескольким получателям по очереди.

        Returns:
            Количество успешно отправленных
        """
        sent = 0
        for token in recipient_tokens:
            if await self.send(token, title, body, data):
                sent += 1
        return sent
