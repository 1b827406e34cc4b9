# tests/core/test_pricing_advanced_fees.py
"""
Тесты 7-шагового расчёта сборов.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.common.constants import MarginCategory
from src.common.exceptions import ConfigurationError, ValidationError
from src.core.pricing.advanced_fees import (
    AdvancedFeeCalculator,
    AdvancedFeeInputs,
    calculate_app_fee,
    calculate_delivery_fee,
    calculate_frais_1,
    calculate_frais_2,
    calculate_frais_3,
    calculate_frais_4,
    compute_advanced_fees,
)
from src.core.pricing.models import MarginConfig, MarginSettings, Zone
from tests.factories import build_order


MARGIN = MarginConfig(margin=0.0, minimum=1.0, maximum=5.0)


class TestSteps:
    """Тесты отдельных шагов."""

    def test_frais_1_within_bounds(self) -> None:
        assert calculate_frais_1(3.0, MARGIN) == 0.0

    def test_frais_1_below_minimum(self) -> None:
        assert calculate_frais_1(0.5, MARGIN) == 0.5

    def test_frais_1_above_maximum(self) -> None:
        assert calculate_frais_1(7.0, MARGIN) == 1.0

    def test_frais_2_is_absolute(self) -> None:
        assert calculate_frais_2(2.5, 0.0, 3.0, 6.0) == pytest.approx(0.5)
        assert calculate_frais_2(2.5, 0.0, 3.0, 4.0) == pytest.approx(1.5)

    def test_frais_3_never_negative(self) -> None:
        assert calculate_frais_3(6.0, 12.0, 10.0) == 4.0
        assert calculate_frais_3(6.0, 20.0, 10.0) == 0.0

    def test_frais_4_only_for_free_items(self) -> None:
        assert calculate_frais_4(0.0, 0.5) == 0.5
        assert calculate_frais_4(12.5, 0.5) == 0.0

    def test_delivery_fee_depends_on_net_margin(self) -> None:
        assert calculate_delivery_fee(1.5, 0.0, 0.5, 3.0) == 3.0
        assert calculate_delivery_fee(-0.5, 0.0, 0.5, 3.0) == 3.5

    def test_app_fee_prefers_frais_3(self) -> None:
        assert calculate_app_fee(4.0, 0.5) == 4.0
        assert calculate_app_fee(0.0, 0.5) == 0.5


class TestComputeAdvancedFees:
    """Тесты полного расчёта над входами."""

    def test_negative_net_margin(self) -> None:
        breakdown = compute_advanced_fees(
            AdvancedFeeInputs(
                margin=2.5,
                margin_config=MARGIN,
                montant_course=6.0,
                tarif=3.0,
                client_price=12.5,
                payout=10.0,
                total_amount=17.0,
                floor_fee=0.0,
            )
        )

        assert breakdown.frais_1 == 0.0
        assert breakdown.frais_2 == 0.5
        assert breakdown.frais_3 == 0.0
        assert breakdown.frais_4 == 0.0
        assert breakdown.marge_net_amigos == -0.5
        assert breakdown.delivery_fee == 3.5
        assert breakdown.app_fee == 0.0

    def test_positive_net_margin(self) -> None:
        breakdown = compute_advanced_fees(
            AdvancedFeeInputs(
                margin=2.5,
                margin_config=MARGIN,
                montant_course=4.0,
                tarif=3.0,
                client_price=12.5,
                payout=10.0,
                total_amount=17.0,
                floor_fee=0.0,
            )
        )

        assert breakdown.marge_net_amigos == 1.5
        assert breakdown.delivery_fee == 3.0


class TestAdvancedFeeCalculator:
    """Тесты сервиса расчёта сборов."""

    @pytest.fixture
    def pricing_repository(self) -> MagicMock:
        repo = MagicMock()
        repo.get_margin_settings = AsyncMock(return_value=MarginSettings(C1=MARGIN))
        repo.get_additional_fees = AsyncMock(side_effect=ConfigurationError("нет сборов"))
        return repo

    @pytest.fixture
    def remuneration(self) -> MagicMock:
        service = MagicMock()
        service.resolve_zone = AsyncMock(return_value=Zone(id="zone-1", number=1, max_distance=5.0, price=3.0))
        service.calculate_montant_course = AsyncMock(return_value=6.0)
        return service

    @pytest.fixture
    def order_repository(self) -> MagicMock:
        repo = MagicMock()
        repo.update_fees = AsyncMock(return_value=True)
        return repo

    @pytest.mark.asyncio
    async def test_calculate_with_default_fees(
        self,
        pricing_repository: MagicMock,
        remuneration: MagicMock,
        order_repository: MagicMock,
    ) -> None:
        calculator = AdvancedFeeCalculator(pricing_repository, remuneration, order_repository)

        breakdown = await calculator.calculate_advanced_fees(build_order(final_amount=17.0))

        assert breakdown.margin_category == MarginCategory.C1
        assert breakdown.zone_number == 1
        assert breakdown.delivery_fee == 3.5
        assert breakdown.app_fee == 0.0

    @pytest.mark.asyncio
    async def test_update_order_saves_fees(
        self,
        pricing_repository: MagicMock,
        remuneration: MagicMock,
        order_repository: MagicMock,
    ) -> None:
        calculator = AdvancedFeeCalculator(pricing_repository, remuneration, order_repository)

        updated = await calculator.update_order_with_advanced_fees(build_order(final_amount=17.0))

        order_repository.update_fees.assert_awaited_once_with("order-1", 3.5, 0.0, 16.0)
        assert updated.delivery_fee == 3.5
        assert updated.final_amount == 16.0

    @pytest.mark.asyncio
    async def test_missing_zone_propagates(
        self,
        pricing_repository: MagicMock,
        remuneration: MagicMock,
        order_repository: MagicMock,
    ) -> None:
        remuneration.resolve_zone = AsyncMock(side_effect=ValidationError("нет зоны"))
        calculator = AdvancedFeeCalculator(pricing_repository, remuneration, order_repository)

        with pytest.raises(ValidationError):
            await calculator.calculate_advanced_fees(build_order(zone_id=None))
        order_repository.update_fees.assert_not_awaited()
