# tests/core/test_grouping_criteria.py
"""
Тесты критериев совместимости заказов.
"""

from __future__ import annotations

from src.common.localization import get_text
from src.core.grouping.criteria import (
    GroupingThresholds,
    are_orders_compatible,
    check_group_criteria,
    clients_within,
    get_thresholds,
    is_group_compatible,
    providers_within,
)
from tests.factories import build_order


THRESHOLDS = GroupingThresholds(max_provider_distance_km=6.0, max_client_distance_km=3.0)


class TestThresholds:
    """Пороги из конфигурации."""

    def test_thresholds_from_config(self) -> None:
        thresholds = get_thresholds()
        assert thresholds.max_provider_distance_km == 6.0
        assert thresholds.max_client_distance_km == 3.0


class TestPairCompatibility:
    """Тесты совместимости пары заказов."""

    def test_close_providers_and_clients_are_compatible(self) -> None:
        """Партнёры в 4 км и клиенты в 2 км: пара совместима."""
        first = build_order("o1", provider_km=0, client_km=0)
        second = build_order("o2", provider_km=4, client_km=2)

        assert are_orders_compatible(first, second, THRESHOLDS) is True

    def test_far_providers_never_compatible(self) -> None:
        """Партнёры в 8 км несовместимы даже при одинаковом адресе клиента."""
        first = build_order("o1", provider_km=0, client_km=0)
        second = build_order("o2", provider_km=8, client_km=0)

        assert providers_within(first, second, THRESHOLDS) is False
        assert are_orders_compatible(first, second, THRESHOLDS) is False

    def test_far_clients_not_compatible(self) -> None:
        first = build_order("o1", provider_km=0, client_km=0)
        second = build_order("o2", provider_km=1, client_km=3.5)

        assert clients_within(first, second, THRESHOLDS) is False
        assert are_orders_compatible(first, second, THRESHOLDS) is False

    def test_relation_is_symmetric(self) -> None:
        first = build_order("o1", provider_km=0, client_km=0)
        second = build_order("o2", provider_km=5.5, client_km=2.9)

        assert are_orders_compatible(first, second, THRESHOLDS) == are_orders_compatible(second, first, THRESHOLDS)

    def test_missing_location_is_incompatible(self) -> None:
        first = build_order("o1", provider_location=None)
        second = build_order("o2")

        assert are_orders_compatible(first, second, THRESHOLDS) is False

    def test_default_thresholds_used(self) -> None:
        first = build_order("o1", provider_km=0, client_km=0)
        second = build_order("o2", provider_km=4, client_km=2)

        assert are_orders_compatible(first, second) is True


class TestGroupCompatibility:
    """Тесты совместимости тройки."""

    def test_all_pairs_checked(self) -> None:
        """Пары 1-2 и 2-3 близки, но 1-3 далеко: тройка несовместима."""
        orders = [
            build_order("o1", provider_km=0),
            build_order("o2", provider_km=4),
            build_order("o3", provider_km=8),
        ]
        assert is_group_compatible(orders, THRESHOLDS) is False

    def test_compact_triple_compatible(self) -> None:
        orders = [
            build_order("o1", provider_km=0, client_km=0),
            build_order("o2", provider_km=1, client_km=1),
            build_order("o3", provider_km=2, client_km=2),
        ]
        assert is_group_compatible(orders, THRESHOLDS) is True


class TestCheckGroupCriteria:
    """Тесты проверки с объяснением причины."""

    def test_valid_group(self) -> None:
        result = check_group_criteria([build_order("o1"), build_order("o2", provider_km=1)])

        assert result.valid is True
        assert result.reason == get_text("CRITERIA_OK")

    def test_reports_missing_location(self) -> None:
        result = check_group_criteria([build_order("o1"), build_order("o2", delivery_address=None)])

        assert result.valid is False
        assert result.reason == get_text("LOCATION_MISSING", index=2)

    def test_reports_first_failing_pair(self) -> None:
        orders = [
            build_order("o1", provider_km=0),
            build_order("o2", provider_km=4),
            build_order("o3", provider_km=8),
        ]
        result = check_group_criteria(orders, "en")

        assert result.valid is False
        assert result.reason == get_text("PROVIDERS_TOO_FAR", "en", pair="1-3", limit="6")

    def test_reports_clients_too_far(self) -> None:
        orders = [build_order("o1", client_km=0), build_order("o2", client_km=5)]
        result = check_group_criteria(orders)

        assert result.valid is False
        assert result.reason == get_text("CLIENTS_TOO_FAR", pair="1-2", limit="3")
