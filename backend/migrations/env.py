from __future__ import annotations
import asyncio
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context
from fwb_gallery.config import settings
from fwb_gallery.db import Base
import fwb_gallery.models.user  # ensure models are registered
import fwb_gallery.models.submission
import fwb_gallery.models.vote
import fwb_gallery.models.audit

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

def _database_url() -> str:
    # `alembic -x db_url=...` points a one-off run elsewhere without touching the environment
    return context.get_x_argument(as_dictionary=True).get("db_url") or settings.database_url

def _configure(**kwargs):
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )

def run_migrations_offline():
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()

def do_run_migrations(connection: Connection):
    # SQLite cannot ALTER constraints in place; batch mode rebuilds the table
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    with context.begin_transaction():
        context.run_migrations()

async def run_migrations_online():
    connectable = create_async_engine(_database_url(), poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()

if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
