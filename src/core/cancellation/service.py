# src/core/cancellation/service.py
"""
Сервис отмены заказов.

Типы отмены:
    ANNULER_1 - клиент в течение первой минуты, без штрафа
    ANNULER_2 - партнёр (товар недоступен)
    ANNULER_3 - администратор (клиент не явился), клиент блокируется

Отмена заказа (и блокировка клиента) выполняется одной транзакцией.
Учёт у курьера и запись об отмене выполняются после неё; их ошибки
журналируются и не откатывают отмену.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from src.common.constants import CancellationType, OrderStatus, ProviderPaymentMode, TypeMsg
from src.common.exceptions import StateError, ValidationError
from src.common.localization import get_text
from src.common.logger import log_error, log_info, log_warning
from src.core.cancellation.models import Cancellation, CancellationResult
from src.core.cancellation.repository import CancellationRepository
from src.core.clients.models import ClientBlockStatus
from src.core.clients.repository import ClientRepository
from src.core.deliverers.repository import DelivererRepository
from src.core.deliverers.service import DelivererService
from src.core.orders.models import Order, utc_now
from src.core.orders.repository import OrderRepository
from src.core.pricing.remuneration import RemunerationService
from src.infra.database import DatabaseManager


REASON_ANNULER_1 = "Client cancellation within 1 minute"
REASON_ANNULER_2 = "Product unavailable"
REASON_ANNULER_3 = "Client absence - account blocked"


def calculate_cancellation_solde(
    payout: float,
    montant_course: float,
    provider_payment_mode: Optional[ProviderPaymentMode],
    course_share: float = 0.3,
) -> float:
    """
    Сальдо отмены ANNULER_2/ANNULER_3.

    Наличный расчёт с партнёром (especes, по умолчанию): выплата партнёру
    плюс доля стоимости курса. Иначе только доля стоимости курса.
    """
    mode = provider_payment_mode or ProviderPaymentMode.ESPECES
    share = course_share * montant_course
    if mode == ProviderPaymentMode.ESPECES:
        return round(payout + share, 2)
    return round(share, 2)


def local_day(moment: datetime) -> date:
    """Календарный день момента в часовом поясе сервиса."""
    from src.config import settings

    return moment.astimezone(ZoneInfo(settings.system.TIMEZONE)).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Начало и конец (не включительно) календарного дня в часовом поясе сервиса."""
    from src.config import settings

    start = datetime.combine(day, time.min, tzinfo=ZoneInfo(settings.system.TIMEZONE))
    return start, start + timedelta(days=1)


class CancellationService:
    """Обработка трёх типов отмены и агрегаты по отменам."""

    def __init__(
        self,
        db: DatabaseManager,
        order_repository: OrderRepository,
        deliverer_repository: DelivererRepository,
        cancellation_repository: CancellationRepository,
        client_repository: ClientRepository,
        remuneration_service: RemunerationService,
        deliverer_service: DelivererService,
    ) -> None:
        self._db = db
        self._orders = order_repository
        self._deliverers = deliverer_repository
        self._cancellations = cancellation_repository
        self._clients = client_repository
        self._remuneration = remuneration_service
        self._deliverer_service = deliverer_service

    # =========================================================================
    # ПРОВЕРКИ СОСТОЯНИЯ
    # =========================================================================

    @staticmethod
    def _recorded_outcome(
        order: Order,
        cancellation_type: CancellationType,
        lang: Optional[str],
    ) -> Optional[CancellationResult]:
        """
        Результат для уже отменённого заказа.

        Повтор того же типа возвращает записанный итог без побочных
        эффектов, другой тип отклоняется.

        Raises:
            StateError: заказ отменён другим типом или уже доставлен
        """
        if order.status == OrderStatus.DELIVERED:
            raise StateError(get_text("CANCEL_NOT_ALLOWED", lang))
        if not order.is_cancelled:
            return None
        if order.cancellation_type != cancellation_type:
            raise StateError(get_text("CANCEL_TYPE_CONFLICT", lang))
        return CancellationResult(
            success=True,
            message=get_text("CANCEL_ALREADY_DONE", lang),
            cancellation_type=cancellation_type,
            solde=order.cancellation_solde or 0.0,
            client_blocked=cancellation_type == CancellationType.ANNULER_3,
        )

    async def _after_lost_update(
        self,
        order_id: str,
        cancellation_type: CancellationType,
        lang: Optional[str],
    ) -> CancellationResult:
        """Условное обновление не сработало: статус изменился параллельно."""
        current = await self._orders.get_by_id(order_id)
        if current is not None:
            outcome = self._recorded_outcome(current, cancellation_type, lang)
            if outcome is not None:
                return outcome
        raise StateError(get_text("CANCEL_NOT_ALLOWED", lang))

    # =========================================================================
    # ПОБОЧНЫЕ ЭФФЕКТЫ
    # =========================================================================

    async def _montant_course_for(self, order: Order) -> float:
        """Стоимость курса для штрафа; 0, если курьера или зоны нет."""
        if not order.delivery_driver_id or not order.zone_id:
            return 0.0
        try:
            return await self._remuneration.calculate_montant_course(order, None, order.effective_order_type)
        except ValidationError as e:
            await log_warning(f"Стоимость курса заказа {order.id} не рассчитана, используется 0: {e}")
            return 0.0

    async def _apply_side_effects(
        self,
        order: Order,
        cancellation_type: CancellationType,
        solde: float,
        reason: str,
        now: datetime,
    ) -> None:
        """Учёт у курьера и запись об отмене. Ошибки только журналируются."""
        deliverer_id = order.delivery_driver_id

        if deliverer_id:
            try:
                async with self._db.transaction() as conn:
                    count = await self._deliverer_service.decrement_active_orders(conn, deliverer_id)
                    if solde > 0:
                        await self._deliverers.add_cancellation_balance(conn, deliverer_id, local_day(now), solde)
                await log_info(
                    f"Курьер {deliverer_id}: активных заказов {count}, сальдо отмены +{solde:.2f}",
                    type_msg=TypeMsg.DEBUG,
                )
            except Exception as e:
                await log_error(
                    f"Не удалось обновить учёт курьера {deliverer_id} после отмены заказа {order.id}: {e}",
                    exc_info=True,
                )

        try:
            await self._cancellations.create(
                Cancellation(
                    order_id=order.id,
                    deliverer_id=deliverer_id,
                    type=cancellation_type,
                    solde=solde,
                    mode=order.effective_order_type,
                    reason=reason,
                    created_at=now,
                )
            )
        except Exception as e:
            await log_error(f"Не удалось сохранить запись об отмене заказа {order.id}: {e}", exc_info=True)

    # =========================================================================
    # ОТМЕНА
    # =========================================================================

    async def _cancel(
        self,
        order: Order,
        cancellation_type: CancellationType,
        solde: float,
        reason: str,
        cancelled_by: Optional[str],
        now: datetime,
        lang: Optional[str],
        block_client: bool = False,
    ) -> CancellationResult:
        from src.config import settings

        client_blocked = False
        async with self._db.transaction() as conn:
            cancelled = await self._orders.mark_cancelled(
                conn,
                order.id,
                cancellation_type.value,
                solde,
                reason,
                cancelled_by,
                now,
            )
            if cancelled and block_client and order.client_id:
                client_blocked = await self._clients.block_client(
                    conn, order.client_id, settings.cancellation.CLIENT_BLOCK_REASON, now
                )

        if not cancelled:
            return await self._after_lost_update(order.id, cancellation_type, lang)

        await log_info(
            f"{cancellation_type.value}: заказ {order.id} отменён, сальдо {solde:.2f}"
            + (f", клиент {order.client_id} заблокирован" if client_blocked else ""),
            type_msg=TypeMsg.INFO,
        )

        await self._apply_side_effects(order, cancellation_type, solde, reason, now)

        message_key = {
            CancellationType.ANNULER_1: "CANCEL_NO_PENALTY",
            CancellationType.ANNULER_2: "CANCEL_BY_PROVIDER",
            CancellationType.ANNULER_3: "CANCEL_CLIENT_BLOCKED",
        }[cancellation_type]
        return CancellationResult(
            success=True,
            message=get_text(message_key, lang),
            cancellation_type=cancellation_type,
            solde=solde,
            client_blocked=client_blocked,
        )

    async def handle_annuler_1(
        self,
        order: Order,
        now: Optional[datetime] = None,
        lang: Optional[str] = None,
    ) -> CancellationResult:
        """
        Отмена клиентом в течение окна (по умолчанию 60 с) после создания.

        Raises:
            ValidationError: заказ не передан
        """
        from src.config import settings

        if order is None:
            raise ValidationError("Заказ обязателен")
        now = now or utc_now()

        try:
            outcome = self._recorded_outcome(order, CancellationType.ANNULER_1, lang)
            if outcome is not None:
                return outcome

            elapsed = (now - order.created_at).total_seconds()
            if elapsed >= settings.cancellation.GRACE_WINDOW_SECONDS:
                raise StateError(get_text("CANCEL_WINDOW_EXPIRED", lang))

            return await self._cancel(
                order,
                CancellationType.ANNULER_1,
                0.0,
                REASON_ANNULER_1,
                order.client_id,
                now,
                lang,
            )
        except StateError as e:
            await log_info(f"ANNULER_1 отклонена для заказа {order.id}: {e}", type_msg=TypeMsg.DEBUG)
            return CancellationResult(False, str(e))

    async def handle_annuler_2(
        self,
        order: Order,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
        cancelled_by: Optional[str] = None,
        lang: Optional[str] = None,
    ) -> CancellationResult:
        """
        Отмена партнёром (товар недоступен).

        Raises:
            ValidationError: заказ не передан
        """
        from src.config import settings

        if order is None:
            raise ValidationError("Заказ обязателен")
        now = now or utc_now()

        try:
            outcome = self._recorded_outcome(order, CancellationType.ANNULER_2, lang)
            if outcome is not None:
                return outcome

            montant_course = await self._montant_course_for(order)
            solde = calculate_cancellation_solde(
                order.payout,
                montant_course,
                order.provider_payment_mode,
                settings.cancellation.COURSE_SHARE,
            )
            return await self._cancel(
                order,
                CancellationType.ANNULER_2,
                solde,
                reason or REASON_ANNULER_2,
                cancelled_by,
                now,
                lang,
            )
        except StateError as e:
            await log_info(f"ANNULER_2 отклонена для заказа {order.id}: {e}", type_msg=TypeMsg.DEBUG)
            return CancellationResult(False, str(e))

    async def handle_annuler_3(
        self,
        order: Order,
        admin_id: str,
        now: Optional[datetime] = None,
        lang: Optional[str] = None,
    ) -> CancellationResult:
        """
        Отмена администратором (клиент не явился). Клиент блокируется
        в той же транзакции, что и отмена заказа.

        Raises:
            ValidationError: заказ или ID администратора не переданы
        """
        from src.config import settings

        if order is None:
            raise ValidationError("Заказ обязателен")
        if not admin_id:
            raise ValidationError(get_text("CANCEL_ADMIN_REQUIRED", lang))
        now = now or utc_now()

        try:
            outcome = self._recorded_outcome(order, CancellationType.ANNULER_3, lang)
            if outcome is not None:
                return outcome

            montant_course = await self._montant_course_for(order)
            solde = calculate_cancellation_solde(
                order.payout,
                montant_course,
                order.provider_payment_mode,
                settings.cancellation.COURSE_SHARE,
            )
            return await self._cancel(
                order,
                CancellationType.ANNULER_3,
                solde,
                REASON_ANNULER_3,
                admin_id,
                now,
                lang,
                block_client=True,
            )
        except StateError as e:
            await log_info(f"ANNULER_3 отклонена для заказа {order.id}: {e}", type_msg=TypeMsg.DEBUG)
            return CancellationResult(False, str(e))

    # =========================================================================
    # АГРЕГАТЫ
    # =========================================================================

    async def calculate_masse_annulation(self, deliverer_id: str, day: date) -> float:
        """
        Масса отмен: сумма сальдо отмен курьера за календарный день.

        Raises:
            ValidationError: не передан курьер или день
        """
        if not deliverer_id or day is None:
            raise ValidationError("Курьер и дата обязательны")

        start, end = day_bounds(day)
        total = round(await self._cancellations.sum_for_deliverer(deliverer_id, start, end), 2)
        await log_info(f"Масса отмен курьера {deliverer_id} за {day.isoformat()}: {total}", type_msg=TypeMsg.DEBUG)
        return total

    async def check_client_block_status(self, client_id: str) -> ClientBlockStatus:
        """Статус блокировки клиента (неизвестный клиент не заблокирован)."""
        status = await self._clients.get_block_status(client_id)
        return status or ClientBlockStatus()
