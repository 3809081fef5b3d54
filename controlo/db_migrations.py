from __future__ import annotations

from pathlib import Path

import click
from alembic import command
from alembic.config import Config as AlembicConfig
from flask import Flask, current_app


PROJECT_ROOT = Path(__file__).resolve().parent.parent

_POSTGRES_PREFIXES = ("postgres://", "postgresql://")


def to_sqlalchemy_url(raw_db_path: str) -> str:
    """Turn ``DB_PATH`` (a file path or a libpq URL) into a SQLAlchemy URL."""
    value = (raw_db_path or "").strip()
    if not value:
        raise RuntimeError("DB_PATH indefinido para migrations.")
    for prefix in _POSTGRES_PREFIXES:
        if value.startswith(prefix):
            return "postgresql+psycopg2://" + value[len(prefix) :]
    if "://" in value:
        return value
    return "sqlite:///" + Path(value).expanduser().resolve().as_posix()


def build_alembic_config(db_path: str) -> AlembicConfig:
    ini_path = PROJECT_ROOT / "alembic.ini"
    if not ini_path.is_file():
        raise RuntimeError(f"alembic.ini nao encontrado em {PROJECT_ROOT}.")
    alembic_cfg = AlembicConfig(str(ini_path))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", to_sqlalchemy_url(db_path))
    return alembic_cfg


def _current_config() -> AlembicConfig:
    return build_alembic_config(current_app.config["DB_PATH"])


def register_db_cli(app: Flask) -> None:
    @app.cli.group("db")
    def db_group() -> None:
        """Migrations do esquema de concursos."""

    @db_group.command("upgrade")
    @click.argument("revision", default="head")
    def upgrade(revision: str) -> None:
        command.upgrade(_current_config(), revision)
        click.echo(f"Esquema atualizado ate {revision}.")

    @db_group.command("downgrade")
    @click.argument("revision", default="-1")
    def downgrade(revision: str) -> None:
        command.downgrade(_current_config(), revision)
        click.echo(f"Esquema revertido ate {revision}.")

    @db_group.command("current")
    def current() -> None:
        command.current(_current_config(), verbose=True)
