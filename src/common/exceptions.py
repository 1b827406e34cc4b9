# src/common/exceptions.py
"""
Доменные исключения ядра доставки.
"""

from __future__ import annotations


class DeliveryCoreError(Exception):
    """Базовое исключение ядра доставки."""


class ValidationError(DeliveryCoreError):
    """Отсутствуют обязательные данные (зона, заказ, курьер, суммы)."""


class ConcurrencyConflict(DeliveryCoreError):
    """
    Условная запись затронула меньше строк, чем ожидалось.

    Attributes:
        expected: Ожидаемое количество строк
        actual: Фактическое количество строк
    """

    def __init__(self, message: str, expected: int = 0, actual: int = 0) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class StateError(DeliveryCoreError):
    """Операция недопустима в текущем состоянии заказа."""


class ConfigurationError(DeliveryCoreError):
    """Конфигурация маржи или сборов отсутствует или повреждена."""
