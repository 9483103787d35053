"""
Alembic environment for the Origin API.

The database URL comes from origin_api Settings (DATABASE_URL_OVERRIDE or the
DATABASE_* parts in .env); the value in alembic.ini is only a placeholder.
Every model module is registered through origin_api.models so autogenerate
sees the whole schema.

    alembic revision --autogenerate -m "add_column_x"
    alembic upgrade head
    alembic upgrade head --sql      # offline, prints the SQL
    alembic downgrade -1
"""
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Run from any directory: the project root holds the origin_api package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from origin_api.config import settings
from origin_api.database import Base
import origin_api.models  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=settings.database_url.startswith("sqlite"),
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # Migrations get their own short-lived connection, not the app pool
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite can only ALTER via table copies
            render_as_batch=connection.dialect.name == "sqlite",
            **COMPARE_OPTIONS,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
