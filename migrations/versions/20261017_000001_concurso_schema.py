"""Concurso schema: lookups, users, concurso, logs

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17 00:00:01
"""

from __future__ import annotations

from typing import Iterable, Sequence, Union

from alembic import op
from sqlalchemy.engine import Connection

from controlo.db import _convert_qmark_to_pg, create_schema, drop_schema


# revision identifiers, used by Alembic.
revision: str = "20261017_000001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


class _MigrationDb:
    """Gives ``create_schema``/``drop_schema`` the ``Database`` interface over Alembic's connection."""

    def __init__(self, connection: Connection, backend: str):
        self._connection = connection
        self.backend = backend

    def execute(self, sql: str, params: Iterable | None = None):
        if params is None:
            return self._connection.exec_driver_sql(sql)
        statement = _convert_qmark_to_pg(sql) if self.backend == "postgres" else sql
        return self._connection.exec_driver_sql(statement, tuple(params))

    def commit(self):
        # Alembic owns the transaction.
        return None


def _db() -> _MigrationDb:
    bind = op.get_bind()
    backend = "postgres" if bind.dialect.name == "postgresql" else "sqlite"
    return _MigrationDb(bind, backend)


def upgrade() -> None:
    create_schema(_db())


def downgrade() -> None:
    drop_schema(_db())
