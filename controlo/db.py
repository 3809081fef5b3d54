import logging
import sqlite3
import threading
from typing import Callable, Dict, Iterable

import psycopg2
import psycopg2.extras
import psycopg2.pool
from flask import current_app, g

from controlo.domain.enums import ObjectType, Outcome, Role, Status


logger = logging.getLogger(__name__)


class Database:
    def __init__(self, backend: str, connection, release: Callable | None = None):
        self.backend = backend
        self._conn = connection
        self._release = release

    def execute(self, sql: str, params: Iterable | None = None):
        if self.backend == "postgres":
            cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            if params:
                sql = _convert_qmark_to_pg(sql)
                cursor.execute(sql, list(params))
            else:
                cursor.execute(sql)
            return cursor
        return self._conn.execute(sql, tuple(params or ()))

    def commit(self):
        self._conn.commit()

    def close(self):
        if self._release is not None:
            self._release(self._conn)
            return
        self._conn.close()


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("%", "%%").replace("?", "%s")


_POOLS: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
_POOLS_LOCK = threading.Lock()


def _postgres_pool(dsn: str, max_open: int, max_idle: int) -> psycopg2.pool.ThreadedConnectionPool:
    with _POOLS_LOCK:
        pool = _POOLS.get(dsn)
        if pool is None:
            max_open = max(1, int(max_open))
            # psycopg2 closes connections returned beyond minconn, so minconn is the idle cap.
            min_idle = max(0, min(int(max_idle), max_open))
            pool = psycopg2.pool.ThreadedConnectionPool(min_idle, max_open, dsn)
            _POOLS[dsn] = pool
            logger.info("db_pool_created", extra={"max_open": max_open, "max_idle": min_idle})
        return pool


def close_pools() -> None:
    with _POOLS_LOCK:
        for pool in _POOLS.values():
            pool.closeall()
        _POOLS.clear()


def _connect_database(db_path: str, *, max_open: int = 25, max_idle: int = 5) -> Database:
    if db_path.lower().startswith("postgres"):
        pool = _postgres_pool(db_path, max_open, max_idle)
        conn = pool.getconn()
        conn.autocommit = True
        return Database("postgres", conn, release=pool.putconn)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return Database("sqlite", conn)


def get_db():
    if "db" not in g:
        g.db = _connect_database(
            current_app.config["DB_PATH"],
            max_open=current_app.config.get("DB_MAX_OPEN", 25),
            max_idle=current_app.config.get("DB_MAX_IDLE", 5),
        )
    return g.db


def close_db(_error=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    create_schema(db)
    db.commit()


def create_schema(db) -> None:
    statements = _POSTGRES_SCHEMA if db.backend == "postgres" else _SQLITE_SCHEMA
    for statement in statements:
        db.execute(statement)
    _seed_lookups(db)


def drop_schema(db) -> None:
    for table in ("logs", "concurso", "users", "resultado", "estado", "plataforma", "tipo", "cargo"):
        db.execute(f"DROP TABLE IF EXISTS {table}")


_SQLITE_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS cargo (
        id_cargo INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tipo (
        id_tipo INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS plataforma (
        id_platforma INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS estado (
        id_estado INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resultado (
        id_resultado INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id_user INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL DEFAULT 'user',
        email TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL,
        cargo_id INTEGER REFERENCES cargo (id_cargo),
        failed_attempts INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS concurso (
        id_concurso INTEGER PRIMARY KEY AUTOINCREMENT,
        referencia TEXT NOT NULL,
        entidade TEXT NOT NULL,
        referencia_bc TEXT NOT NULL DEFAULT '',
        preco REAL NOT NULL DEFAULT 0,
        dia_erro TEXT,
        hora_erro TEXT,
        dia_proposta TEXT,
        hora_proposta TEXT,
        dia_audiencia TEXT,
        hora_audiencia TEXT,
        preliminar INTEGER NOT NULL DEFAULT 0,
        final INTEGER NOT NULL DEFAULT 0,
        recurso INTEGER NOT NULL DEFAULT 0,
        impugnacao INTEGER NOT NULL DEFAULT 0,
        tipo_id INTEGER NOT NULL REFERENCES tipo (id_tipo),
        plataforma_id INTEGER NOT NULL REFERENCES plataforma (id_platforma),
        estado_id INTEGER NOT NULL REFERENCES estado (id_estado),
        resultado_id INTEGER REFERENCES resultado (id_resultado),
        link TEXT NOT NULL DEFAULT '',
        adjudicatario TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS logs (
        id_logs INTEGER PRIMARY KEY AUTOINCREMENT,
        tabela TEXT NOT NULL,
        acao TEXT NOT NULL,
        old_data TEXT,
        new_data TEXT,
        id_user INTEGER,
        timestamp TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_concurso_estado ON concurso (estado_id)",
    "CREATE INDEX IF NOT EXISTS idx_concurso_proposta ON concurso (dia_proposta, hora_proposta)",
    "CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs (timestamp)",
)


_POSTGRES_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS cargo (
        id_cargo INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tipo (
        id_tipo INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS plataforma (
        id_platforma INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS estado (
        id_estado INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resultado (
        id_resultado INTEGER PRIMARY KEY,
        descricao TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id_user SERIAL PRIMARY KEY,
        nome TEXT NOT NULL DEFAULT 'user',
        email TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL,
        cargo_id INTEGER REFERENCES cargo (id_cargo),
        failed_attempts INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS concurso (
        id_concurso SERIAL PRIMARY KEY,
        referencia TEXT NOT NULL,
        entidade TEXT NOT NULL,
        referencia_bc TEXT NOT NULL DEFAULT '',
        preco NUMERIC(14, 2) NOT NULL DEFAULT 0,
        dia_erro TEXT,
        hora_erro TEXT,
        dia_proposta TEXT,
        hora_proposta TEXT,
        dia_audiencia TEXT,
        hora_audiencia TEXT,
        preliminar BOOLEAN NOT NULL DEFAULT FALSE,
        final BOOLEAN NOT NULL DEFAULT FALSE,
        recurso BOOLEAN NOT NULL DEFAULT FALSE,
        impugnacao BOOLEAN NOT NULL DEFAULT FALSE,
        tipo_id INTEGER NOT NULL REFERENCES tipo (id_tipo),
        plataforma_id INTEGER NOT NULL REFERENCES plataforma (id_platforma),
        estado_id INTEGER NOT NULL REFERENCES estado (id_estado),
        resultado_id INTEGER REFERENCES resultado (id_resultado),
        link TEXT NOT NULL DEFAULT '',
        adjudicatario TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS logs (
        id_logs SERIAL PRIMARY KEY,
        tabela TEXT NOT NULL,
        acao TEXT NOT NULL,
        old_data TEXT,
        new_data TEXT,
        id_user INTEGER,
        timestamp TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_concurso_estado ON concurso (estado_id)",
    "CREATE INDEX IF NOT EXISTS idx_concurso_proposta ON concurso (dia_proposta, hora_proposta)",
    "CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs (timestamp)",
)


_PLATFORMS = (
    (1, "Vortal"),
    (2, "AcinGov"),
    (3, "Saphety"),
    (4, "Anogov"),
    (5, "Outra"),
)


def _seed_lookups(db) -> None:
    seeds = {
        ("cargo", "id_cargo"): [(role.value, role.label) for role in Role],
        ("tipo", "id_tipo"): [(item.value, item.label) for item in ObjectType],
        ("plataforma", "id_platforma"): list(_PLATFORMS),
        ("estado", "id_estado"): [(item.value, item.label) for item in Status],
        ("resultado", "id_resultado"): [(item.value, item.label) for item in Outcome],
    }
    for (table, key_column), rows in seeds.items():
        for row_id, descricao in rows:
            db.execute(
                f"""
                INSERT INTO {table} ({key_column}, descricao)
                VALUES (?, ?)
                ON CONFLICT DO NOTHING
                """,
                (row_id, descricao),
            )
