# src/core/__init__.py
"""
Доменный слой (Core Domain).
Группировка заказов, расчёт вознаграждений, отмены и проверки курьеров.
"""
