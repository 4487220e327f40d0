"""Alembic environment for the Aura ledger schema.

The database URL always comes from the application settings, so migrations
run against the same store the service uses (``DATABASE_URL`` or, with
``USE_TEST_DATABASE``, ``TEST_DATABASE_URL``). Requires the package to be
installed (``pip install -e .``).
"""
from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from aura_stage.core.settings import settings
from aura_stage.db.session import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.database_url_sync
target_metadata = Base.metadata


def _configure(**options: Any) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place.
        render_as_batch=DATABASE_URL.startswith("sqlite"),
        **options,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a dedicated, unpooled connection."""
    connectable = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
