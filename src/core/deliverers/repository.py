# src/core/deliverers/repository.py
"""
Репозиторий курьеров.

Счётчик активных заказов меняется только внутри транзакции,
удерживающей блокировку строки курьера (SELECT ... FOR UPDATE).
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from asyncpg import Connection, Record

from src.common.constants import DelivererStatus
from src.core.deliverers.models import DailyBalance, Deliverer
from src.infra.database import DatabaseManager, affected_rows


_DELIVERER_COLUMNS = "id, name, status, active_orders_count, push_token"


class DelivererRepository:
    """Репозиторий курьеров."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    def _executor(self, conn: Optional[Connection]) -> Any:
        return conn if conn is not None else self._db

    async def get_by_id(self, deliverer_id: str, conn: Optional[Connection] = None) -> Optional[Deliverer]:
        """Получает курьера по ID."""
        row = await self._executor(conn).fetchrow(
            f"SELECT {_DELIVERER_COLUMNS} FROM deliverers WHERE id = $1",
            deliverer_id,
        )
        return self._row_to_deliverer(row) if row else None

    async def lock_for_update(self, conn: Connection, deliverer_id: str) -> Optional[Deliverer]:
        """Читает курьера с блокировкой строки до конца транзакции."""
        row = await conn.fetchrow(
            f"SELECT {_DELIVERER_COLUMNS} FROM deliverers WHERE id = $1 FOR UPDATE",
            deliverer_id,
        )
        return self._row_to_deliverer(row) if row else None

    async def save_active_orders(
        self,
        conn: Connection,
        deliverer_id: str,
        active_orders_count: int,
        status: DelivererStatus,
    ) -> bool:
        """Сохраняет счётчик активных заказов и статус."""
        result = await conn.execute(
            """
            UPDATE deliverers
            SET active_orders_count = $2,
                status = $3
            WHERE id = $1
            """,
            deliverer_id,
            active_orders_count,
            status.value,
        )
        return affected_rows(result) == 1

    async def add_cancellation_balance(
        self,
        conn: Connection,
        deliverer_id: str,
        day: date,
        amount: float,
    ) -> None:
        """Прибавляет сумму отмены к дневному балансу (создаёт запись дня при отсутствии)."""
        await conn.execute(
            """
            INSERT INTO deliverer_daily_balances (deliverer_id, day, solde_amigos, solde_annulation, paid)
            VALUES ($1, $2, 0, $3, FALSE)
            ON CONFLICT (deliverer_id, day)
            DO UPDATE SET solde_annulation = deliverer_daily_balances.solde_annulation + EXCLUDED.solde_annulation
            """,
            deliverer_id,
            day,
            amount,
        )

    async def get_daily_balance(self, deliverer_id: str, day: date) -> Optional[DailyBalance]:
        """Дневной баланс курьера."""
        row = await self._db.fetchrow(
            """
            SELECT day, solde_amigos, solde_annulation, paid, paid_at
            FROM deliverer_daily_balances
            WHERE deliverer_id = $1 AND day = $2
            """,
            deliverer_id,
            day,
        )
        if row is None:
            return None
        return DailyBalance(
            day=row["day"],
            solde_amigos=float(row["solde_amigos"] or 0),
            solde_annulation=float(row["solde_annulation"] or 0),
            paid=bool(row["paid"]),
            paid_at=row["paid_at"],
        )

    async def list_push_recipients(self) -> list[Deliverer]:
        """Активные курьеры с push-токеном."""
        rows = await self._db.fetch(
            f"""
            SELECT {_DELIVERER_COLUMNS}
            FROM deliverers
            WHERE status = $1 AND push_token IS NOT NULL AND push_token <> ''
            """,
            DelivererStatus.ACTIVE.value,
        )
        return [self._row_to_deliverer(row) for row in rows]

    async def clear_push_token(self, push_token: str) -> int:
        """Удаляет недействительный push-токен."""
        result = await self._db.execute(
            "UPDATE deliverers SET push_token = NULL WHERE push_token = $1",
            push_token,
        )
        return affected_rows(result)

    @staticmethod
    def _row_to_deliverer(row: Record) -> Deliverer:
        return Deliverer(
            id=str(row["id"]),
            name=row["name"],
            status=row["status"] or DelivererStatus.ACTIVE,
            active_orders_count=row["active_orders_count"] or 0,
            push_token=row["push_token"],
        )
