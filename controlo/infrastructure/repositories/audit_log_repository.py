from __future__ import annotations

from typing import Any

from controlo.infrastructure.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository):
    def insert(
        self,
        db,
        *,
        table: str,
        action: str,
        old_data: str | None,
        new_data: str | None,
        user_id: int | None,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO logs (tabela, acao, old_data, new_data, id_user)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id_logs
            """,
            (table, action, old_data, new_data, user_id),
        )
        return self.returned_id(cursor, "id_logs")

    def list(
        self,
        db,
        *,
        table: str | None = None,
        action: str | None = None,
        user_id: int | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> list[dict]:
        query = "SELECT id_logs, tabela, acao, old_data, new_data, id_user, timestamp FROM logs"
        conditions: list[str] = []
        params: list[Any] = []
        if table:
            conditions.append("tabela = ?")
            params.append(table)
        if action:
            conditions.append("acao = ?")
            params.append(action)
        if user_id is not None:
            conditions.append("id_user = ?")
            params.append(user_id)
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY timestamp DESC, id_logs DESC"
        if limit > 0:
            query += " LIMIT ?"
            params.append(int(limit))
            if offset > 0:
                query += " OFFSET ?"
                params.append(int(offset))
        rows = db.execute(query, params).fetchall()
        return self.rows_to_dicts(rows)
