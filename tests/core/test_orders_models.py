# tests/core/test_orders_models.py
"""
Тесты модели заказа и сумм по позициям.
"""

from __future__ import annotations

import pytest

from src.core.orders.models import Order, OrderItem, compute_item_totals


class TestComputeItemTotals:
    """Тесты суммирования позиций."""

    def test_quantity_multiplies_prices(self) -> None:
        items = [
            OrderItem(product_id="p-1", p1=3.5, p2=5.0, quantity=2),
            OrderItem(product_id="p-2", p1=1.25, p2=2.0),
        ]

        assert compute_item_totals(items) == (8.25, 12.0)

    def test_empty_items(self) -> None:
        assert compute_item_totals([]) == (0.0, 0.0)

    def test_rounds_to_three_decimals(self) -> None:
        p1_total, p2_total = compute_item_totals([OrderItem(p1=0.1, p2=0.2, quantity=3)])

        assert p1_total == 0.3
        assert p2_total == pytest.approx(0.6)


class TestOrderTotals:
    """Тесты заполнения сумм заказа."""

    def test_totals_filled_from_items(self) -> None:
        order = Order(items=[OrderItem(p1=4.0, p2=6.0, quantity=2)])

        assert order.payout == 8.0
        assert order.client_price == 12.0

    def test_explicit_totals_kept(self) -> None:
        order = Order(items=[OrderItem(p1=4.0, p2=6.0)], p1_total=10.0, p2_total=12.5)

        assert order.p1_total == 10.0
        assert order.p2_total == 12.5
