from __future__ import annotations

from typing import Any, Iterable


class BaseRepository:
    @staticmethod
    def row_to_dict(row: Any) -> dict | None:
        if row is None:
            return None
        return dict(row)

    @staticmethod
    def rows_to_dicts(rows: Iterable[Any]) -> list[dict]:
        return [dict(row) for row in rows]

    @staticmethod
    def returned_id(cursor, column: str) -> int:
        row = cursor.fetchone()
        return int(row[column] if isinstance(row, dict) else row[0])

    @staticmethod
    def build_update_clause(fields: dict[str, Any]) -> tuple[str, list[Any]]:
        updates = [f"{key} = ?" for key in fields.keys()]
        return ", ".join(updates), list(fields.values())
