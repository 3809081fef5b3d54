from __future__ import annotations

from controlo.infrastructure.repositories.base import BaseRepository


# table -> primary key column; plataforma keeps its historical spelling.
_LOOKUP_TABLES = {
    "cargo": "id_cargo",
    "tipo": "id_tipo",
    "plataforma": "id_platforma",
    "estado": "id_estado",
    "resultado": "id_resultado",
}


class LookupRepository(BaseRepository):
    def options(self, db, table: str) -> list[dict]:
        key_column = _key_column(table)
        rows = db.execute(
            f"SELECT {key_column} AS id, descricao FROM {table} ORDER BY {key_column}"
        ).fetchall()
        return self.rows_to_dicts(rows)

    def exists(self, db, table: str, row_id: int) -> bool:
        key_column = _key_column(table)
        row = db.execute(f"SELECT 1 FROM {table} WHERE {key_column} = ?", (row_id,)).fetchone()
        return bool(row)

    def description(self, db, table: str, row_id: int | None) -> str:
        if row_id is None:
            return ""
        key_column = _key_column(table)
        row = db.execute(
            f"SELECT descricao FROM {table} WHERE {key_column} = ?",
            (row_id,),
        ).fetchone()
        data = self.row_to_dict(row)
        return str(data["descricao"]) if data else ""

    def form_options(self, db) -> dict[str, list[dict]]:
        return {
            "tipos": self.options(db, "tipo"),
            "plataformas": self.options(db, "plataforma"),
            "estados": self.options(db, "estado"),
            "resultados": self.options(db, "resultado"),
        }


def _key_column(table: str) -> str:
    try:
        return _LOOKUP_TABLES[table]
    except KeyError:
        raise ValueError(f"unknown lookup table: {table}") from None
