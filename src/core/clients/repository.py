# src/core/clients/repository.py
"""
Репозиторий клиентов (только блокировка аккаунта).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from asyncpg import Connection

from src.core.clients.models import ClientBlockStatus
from src.infra.database import DatabaseManager, affected_rows


class ClientRepository:
    """Репозиторий клиентов."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def block_client(
        self,
        conn: Connection,
        client_id: str,
        reason: str,
        blocked_at: datetime,
    ) -> bool:
        """
        Блокирует клиента в рамках транзакции вызывающего.

        Returns:
            True если клиент найден
        """
        status = await conn.execute(
            """
            UPDATE clients
            SET is_blocked = TRUE,
                blocked_reason = $2,
                blocked_at = $3
            WHERE id = $1
            """,
            client_id,
            reason,
            blocked_at,
        )
        return affected_rows(status) == 1

    async def get_block_status(self, client_id: str) -> Optional[ClientBlockStatus]:
        """Статус блокировки или None, если клиента нет."""
        row = await self._db.fetchrow(
            "SELECT is_blocked, blocked_reason, blocked_at FROM clients WHERE id = $1",
            client_id,
        )
        if row is None:
            return None
        return ClientBlockStatus(
            is_blocked=bool(row["is_blocked"]),
            reason=row["blocked_reason"],
            blocked_at=row["blocked_at"],
        )
