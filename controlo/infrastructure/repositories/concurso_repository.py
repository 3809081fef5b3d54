from __future__ import annotations

from typing import Any

from controlo.domain.contracts import Concurso
from controlo.domain.enums import Status
from controlo.infrastructure.repositories.base import BaseRepository


_COLUMNS = (
    "referencia",
    "entidade",
    "referencia_bc",
    "preco",
    "dia_erro",
    "hora_erro",
    "dia_proposta",
    "hora_proposta",
    "dia_audiencia",
    "hora_audiencia",
    "preliminar",
    "final",
    "recurso",
    "impugnacao",
    "tipo_id",
    "plataforma_id",
    "estado_id",
    "resultado_id",
    "link",
    "adjudicatario",
)


class ConcursoRepository(BaseRepository):
    def create(self, db, fields: dict[str, Any]) -> int:
        values = [fields.get(column) for column in _COLUMNS]
        placeholders = ", ".join("?" for _ in _COLUMNS)
        cursor = db.execute(
            f"""
            INSERT INTO concurso ({", ".join(_COLUMNS)})
            VALUES ({placeholders})
            RETURNING id_concurso
            """,
            values,
        )
        return self.returned_id(cursor, "id_concurso")

    def update(self, db, concurso_id: int, fields: dict[str, Any]) -> None:
        clause, params = self.build_update_clause({column: fields.get(column) for column in _COLUMNS})
        params.append(concurso_id)
        db.execute(
            f"""
            UPDATE concurso
            SET {clause}
            WHERE id_concurso = ?
            """,
            params,
        )

    def delete(self, db, concurso_id: int) -> None:
        db.execute("DELETE FROM concurso WHERE id_concurso = ?", (concurso_id,))

    def get_by_id(self, db, concurso_id: int) -> Concurso | None:
        row = db.execute(
            """
            SELECT c.*, t.descricao AS tipo_desc, e.descricao AS estado_desc
            FROM concurso c
            LEFT JOIN tipo t ON c.tipo_id = t.id_tipo
            LEFT JOIN estado e ON c.estado_id = e.id_estado
            WHERE c.id_concurso = ?
            """,
            (concurso_id,),
        ).fetchone()
        data = self.row_to_dict(row)
        return Concurso.from_row(data) if data else None

    def list_with_lookups(self, db, entidade: str | None = None) -> list[Concurso]:
        query = """
            SELECT c.*,
                   t.descricao AS tipo_desc,
                   p.descricao AS plataforma_desc,
                   r.descricao AS resultado_desc
            FROM concurso c
            JOIN tipo t ON c.tipo_id = t.id_tipo
            JOIN plataforma p ON c.plataforma_id = p.id_platforma
            LEFT JOIN resultado r ON c.resultado_id = r.id_resultado
        """
        params: list[Any] = []
        if entidade:
            query += " WHERE c.entidade LIKE ?"
            params.append(f"%{entidade}%")
        query += " ORDER BY c.dia_proposta DESC, c.hora_proposta DESC, c.id_concurso DESC"
        rows = db.execute(query, params).fetchall()
        return [Concurso.from_row(row) for row in self.rows_to_dicts(rows)]

    def future_event_rows(self, db, estado_id: int = Status.EM_ANDAMENTO) -> list[dict]:
        rows = db.execute(
            """
            SELECT c.id_concurso, c.entidade, c.estado_id,
                   c.dia_erro, c.hora_erro,
                   c.dia_proposta, c.hora_proposta,
                   c.dia_audiencia, c.hora_audiencia,
                   c.tipo_id, c.referencia, c.link, c.adjudicatario, c.resultado_id
            FROM concurso c
            WHERE c.estado_id = ?
            ORDER BY
                COALESCE(c.dia_proposta, c.dia_erro, c.dia_audiencia) ASC,
                COALESCE(c.hora_proposta, c.hora_erro, c.hora_audiencia) ASC,
                c.id_concurso ASC
            """,
            (int(estado_id),),
        ).fetchall()
        return self.rows_to_dicts(rows)
