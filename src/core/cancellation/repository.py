# src/core/cancellation/repository.py
"""
Репозиторий записей об отменах (только добавление).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from asyncpg import Connection, Record

from src.core.cancellation.models import Cancellation
from src.infra.database import DatabaseManager


class CancellationRepository:
    """Репозиторий отмен."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def create(self, cancellation: Cancellation, conn: Optional[Connection] = None) -> None:
        """Сохраняет запись об отмене."""
        executor = conn if conn is not None else self._db
        await executor.execute(
            """
            INSERT INTO cancellations (id, order_id, deliverer_id, type, solde, mode, reason, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            """,
            cancellation.id,
            cancellation.order_id,
            cancellation.deliverer_id,
            cancellation.type.value,
            cancellation.solde,
            cancellation.mode.value,
            cancellation.reason,
            cancellation.created_at,
        )

    async def get_for_order(self, order_id: str) -> Optional[Cancellation]:
        """Запись об отмене заказа."""
        row = await self._db.fetchrow(
            """
            SELECT id, order_id, deliverer_id, type, solde, mode, reason, created_at
            FROM cancellations
            WHERE order_id = $1
            ORDER BY created_at ASC
            LIMIT 1
            """,
            order_id,
        )
        return self._row_to_cancellation(row) if row else None

    async def sum_for_deliverer(self, deliverer_id: str, start: datetime, end: datetime) -> float:
        """Сумма сальдо отмен курьера за интервал [start, end)."""
        total = await self._db.fetchval(
            """
            SELECT COALESCE(SUM(solde), 0)
            FROM cancellations
            WHERE deliverer_id = $1
              AND created_at >= $2
              AND created_at < $3
            """,
            deliverer_id,
            start,
            end,
        )
        return float(total or 0)

    @staticmethod
    def _row_to_cancellation(row: Record) -> Cancellation:
        return Cancellation(
            id=str(row["id"]),
            order_id=str(row["order_id"]),
            deliverer_id=row["deliverer_id"],
            type=row["type"],
            solde=float(row["solde"] or 0),
            mode=row["mode"] or "A1",
            reason=row["reason"],
            created_at=row["created_at"],
        )
