from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from controlo.db_migrations import to_sqlalchemy_url


alembic_cfg = context.config

if alembic_cfg.config_file_name is not None:
    fileConfig(alembic_cfg.config_file_name, disable_existing_loggers=False)


def _target_url() -> str:
    # `flask db` sets the URL from the app config; a bare `alembic` run falls back to the environment.
    configured = alembic_cfg.get_main_option("sqlalchemy.url")
    from_env = os.environ.get("DATABASE_URL") or os.environ.get("DB_PATH")
    if alembic_cfg.cmd_opts is not None and from_env:
        return to_sqlalchemy_url(from_env)
    if not configured and not from_env:
        raise RuntimeError("URL de base de dados nao informada para Alembic.")
    return to_sqlalchemy_url(configured or from_env)


if context.is_offline_mode():
    # The schema revisions are raw SQL; there is no metadata to diff.
    context.configure(url=_target_url(), target_metadata=None, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = create_engine(_target_url(), poolclass=pool.NullPool, future=True)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()
