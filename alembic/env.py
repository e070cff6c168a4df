from __future__ import annotations

from logging.config import fileConfig
from typing import Any, cast
import logging

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from roomrelay.core.config import settings
from roomrelay.models import Base
import roomrelay.models  # noqa: F401 (registers every table on Base.metadata)

config = context.config
if config.config_file_name is not None:
    try:
        fileConfig(config.config_file_name, disable_existing_loggers=False)
    except KeyError:
        logging.basicConfig(level=logging.INFO)

target_metadata = Base.metadata


def _migration_url() -> str:
    return settings.DATABASE_URL_SYNC


def _is_sqlite(url: str) -> bool:
    # sqlite cannot ALTER most constraints in place; alembic rebuilds the table
    return make_url(url).get_backend_name() == "sqlite"


def run_migrations_offline() -> None:
    url = _migration_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _migration_url()
    cfg = cast(dict[str, Any], config.get_section(config.config_ini_section) or {})
    cfg["sqlalchemy.url"] = url

    connectable = engine_from_config(cfg, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=_is_sqlite(url),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
