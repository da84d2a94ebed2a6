from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool

from petalhub.app.core.config import get_settings
from petalhub.app.db.base import Base
from petalhub.app.db.session import create_engine_from_url
from petalhub.app.db.models import models_v1  # noqa: F401  (registers tables)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# PETALHUB_DATABASE_URL l'emporte sur alembic.ini
DATABASE_URL = get_settings().database_url


def _configure_options(dialect_name: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite : ALTER TABLE limité, on passe par des batch ops
        "render_as_batch": dialect_name == "sqlite",
    }


def run_migrations_offline() -> None:
    """Émet le SQL sans connexion (alembic upgrade --sql)."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(DATABASE_URL.split(":", 1)[0].split("+", 1)[0]),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine_from_url(DATABASE_URL, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(connection.dialect.name))

        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
