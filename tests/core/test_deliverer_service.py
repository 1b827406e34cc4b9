# tests/core/test_deliverer_service.py
"""
Тесты сервиса курьеров: принятие и завершение заказов.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.common.constants import DelivererStatus, OrderType
from src.common.localization import get_text
from src.core.deliverers.models import Deliverer
from src.core.deliverers.service import DelivererService
from tests.factories import build_order


@pytest.fixture
def order_repository() -> MagicMock:
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=build_order())
    repo.list_active_for_deliverer = AsyncMock(return_value=[])
    repo.assign_deliverer = AsyncMock(return_value=True)
    repo.mark_delivered = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def deliverer_repository() -> MagicMock:
    repo = MagicMock()
    repo.lock_for_update = AsyncMock(return_value=Deliverer(id="deliverer-1"))
    repo.save_active_orders = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def service(mock_db: MagicMock, order_repository: MagicMock, deliverer_repository: MagicMock) -> DelivererService:
    return DelivererService(mock_db, order_repository, deliverer_repository)


class TestAcceptOrder:
    """Тесты принятия заказа."""

    @pytest.mark.asyncio
    async def test_first_order_is_a1(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        deliverer_repository: MagicMock,
        mock_conn: AsyncMock,
    ) -> None:
        result = await service.accept_order("deliverer-1", "order-1")

        assert result.success is True
        assert result.message == get_text("ORDER_ACCEPTED")
        assert result.order_type == OrderType.A1
        assert result.active_orders_count == 1
        order_repository.assign_deliverer.assert_awaited_once_with(mock_conn, "order-1", "deliverer-1", OrderType.A1)
        deliverer_repository.save_active_orders.assert_awaited_once_with(
            mock_conn, "deliverer-1", 1, DelivererStatus.BUSY
        )

    @pytest.mark.asyncio
    async def test_second_compatible_order_is_a2(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        deliverer_repository: MagicMock,
    ) -> None:
        deliverer_repository.lock_for_update = AsyncMock(
            return_value=Deliverer(id="deliverer-1", active_orders_count=1, status=DelivererStatus.BUSY)
        )
        order_repository.get_by_id = AsyncMock(return_value=build_order("order-2", provider_km=4, client_km=2))
        order_repository.list_active_for_deliverer = AsyncMock(
            return_value=[build_order("order-1", delivery_driver_id="deliverer-1")]
        )

        result = await service.accept_order("deliverer-1", "order-2")

        assert result.success is True
        assert result.order_type == OrderType.A2
        assert result.active_orders_count == 2

    @pytest.mark.asyncio
    async def test_second_far_order_rejected(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        deliverer_repository: MagicMock,
    ) -> None:
        deliverer_repository.lock_for_update = AsyncMock(
            return_value=Deliverer(id="deliverer-1", active_orders_count=1)
        )
        order_repository.get_by_id = AsyncMock(return_value=build_order("order-2", provider_km=8))
        order_repository.list_active_for_deliverer = AsyncMock(return_value=[build_order("order-1")])

        result = await service.accept_order("deliverer-1", "order-2")

        assert result.success is False
        assert result.message == get_text(
            "GROUP_CRITERIA_FAILED",
            group_type="A2",
            reason=get_text("PROVIDERS_TOO_FAR", pair="1-2", limit="6"),
        )
        order_repository.assign_deliverer.assert_not_awaited()
        deliverer_repository.save_active_orders.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_third_order_checks_all_pairs(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        deliverer_repository: MagicMock,
    ) -> None:
        deliverer_repository.lock_for_update = AsyncMock(
            return_value=Deliverer(id="deliverer-1", active_orders_count=2)
        )
        order_repository.get_by_id = AsyncMock(return_value=build_order("order-3", provider_km=2, client_km=2))
        order_repository.list_active_for_deliverer = AsyncMock(
            return_value=[build_order("order-1"), build_order("order-2", provider_km=1, client_km=1)]
        )

        result = await service.accept_order("deliverer-1", "order-3")

        assert result.success is True
        assert result.order_type == OrderType.A3
        assert result.active_orders_count == 3

    @pytest.mark.asyncio
    async def test_urgent_order_is_a4(self, service: DelivererService, order_repository: MagicMock) -> None:
        order_repository.get_by_id = AsyncMock(return_value=build_order(is_urgent=True))

        result = await service.accept_order("deliverer-1", "order-1")

        assert result.order_type == OrderType.A4

    @pytest.mark.asyncio
    async def test_grouped_order_keeps_group_type(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        mock_conn: AsyncMock,
    ) -> None:
        order_repository.get_by_id = AsyncMock(
            return_value=build_order(
                "order-1",
                order_type=OrderType.A2,
                is_grouped=True,
                grouped_orders=["order-1", "order-2"],
                solde=5.0,
            )
        )

        result = await service.accept_order("deliverer-1", "order-1")

        assert result.success is True
        assert result.order_type == OrderType.A2
        assert result.active_orders_count == 1
        order_repository.assign_deliverer.assert_awaited_once_with(mock_conn, "order-1", "deliverer-1", None)

    @pytest.mark.asyncio
    async def test_grouped_a3_order_not_downgraded(self, service: DelivererService, order_repository: MagicMock) -> None:
        order_repository.get_by_id = AsyncMock(
            return_value=build_order(
                "order-2",
                order_type=OrderType.A3,
                is_grouped=True,
                grouped_orders=["order-1", "order-2", "order-3"],
            )
        )

        result = await service.accept_order("deliverer-1", "order-2")

        assert result.order_type == OrderType.A3
        assert order_repository.assign_deliverer.await_args.args[-1] is None

    @pytest.mark.asyncio
    async def test_limit_reached(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        deliverer_repository: MagicMock,
    ) -> None:
        deliverer_repository.lock_for_update = AsyncMock(
            return_value=Deliverer(id="deliverer-1", active_orders_count=3)
        )

        result = await service.accept_order("deliverer-1", "order-1")

        assert result.success is False
        assert result.message == get_text("ORDER_LIMIT_REACHED", limit=3)
        order_repository.assign_deliverer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_deliverer(self, service: DelivererService, deliverer_repository: MagicMock) -> None:
        deliverer_repository.lock_for_update = AsyncMock(return_value=None)

        result = await service.accept_order("missing", "order-1")

        assert result.success is False
        assert result.message == get_text("INVALID_DELIVERER_OR_ORDER")

    @pytest.mark.asyncio
    async def test_lost_race_for_order(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        deliverer_repository: MagicMock,
    ) -> None:
        order_repository.assign_deliverer = AsyncMock(return_value=False)

        result = await service.accept_order("deliverer-1", "order-1")

        assert result.success is False
        assert result.message == get_text("ORDER_NOT_AVAILABLE")
        deliverer_repository.save_active_orders.assert_not_awaited()


class TestCompleteOrder:
    """Тесты завершения заказа и счётчика активных заказов."""

    @pytest.mark.asyncio
    async def test_last_order_makes_deliverer_active(
        self,
        service: DelivererService,
        deliverer_repository: MagicMock,
        mock_conn: AsyncMock,
    ) -> None:
        deliverer_repository.lock_for_update = AsyncMock(
            return_value=Deliverer(id="deliverer-1", active_orders_count=1, status=DelivererStatus.BUSY)
        )

        result = await service.complete_order("deliverer-1", "order-1")

        assert result.success is True
        assert result.active_orders_count == 0
        deliverer_repository.save_active_orders.assert_awaited_once_with(
            mock_conn, "deliverer-1", 0, DelivererStatus.ACTIVE
        )

    @pytest.mark.asyncio
    async def test_remaining_orders_keep_status(
        self,
        service: DelivererService,
        deliverer_repository: MagicMock,
        mock_conn: AsyncMock,
    ) -> None:
        deliverer_repository.lock_for_update = AsyncMock(
            return_value=Deliverer(id="deliverer-1", active_orders_count=2, status=DelivererStatus.BUSY)
        )

        result = await service.complete_order("deliverer-1", "order-1")

        assert result.active_orders_count == 1
        deliverer_repository.save_active_orders.assert_awaited_once_with(
            mock_conn, "deliverer-1", 1, DelivererStatus.BUSY
        )

    @pytest.mark.asyncio
    async def test_order_not_assigned(
        self,
        service: DelivererService,
        order_repository: MagicMock,
        deliverer_repository: MagicMock,
    ) -> None:
        order_repository.mark_delivered = AsyncMock(return_value=False)

        result = await service.complete_order("deliverer-1", "order-1")

        assert result.success is False
        assert result.message == get_text("ORDER_NOT_ASSIGNED")
        deliverer_repository.save_active_orders.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_counter_never_negative(
        self,
        service: DelivererService,
        deliverer_repository: MagicMock,
        mock_conn: AsyncMock,
    ) -> None:
        assert await service.decrement_active_orders(mock_conn, "deliverer-1") == 0
        deliverer_repository.save_active_orders.assert_awaited_once_with(
            mock_conn, "deliverer-1", 0, DelivererStatus.ACTIVE
        )

    @pytest.mark.asyncio
    async def test_decrement_unknown_deliverer(
        self,
        service: DelivererService,
        deliverer_repository: MagicMock,
        mock_conn: AsyncMock,
    ) -> None:
        deliverer_repository.lock_for_update = AsyncMock(return_value=None)

        assert await service.decrement_active_orders(mock_conn, "missing") is None
        deliverer_repository.save_active_orders.assert_not_awaited()
