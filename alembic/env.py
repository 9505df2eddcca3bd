"""Alembic environment for the table editor schema (raw SQL migrations, no metadata)."""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The app talks to Postgres through asyncpg; alembic runs on sync sqlalchemy + psycopg2.
database_url = os.environ.get("DATABASE_URL", "")
for prefix in ("postgres://", "postgresql+asyncpg://"):
    if database_url.startswith(prefix):
        database_url = "postgresql://" + database_url[len(prefix) :]
        break

config.set_main_option("sqlalchemy.url", database_url)


def run_migrations_offline() -> None:
    context.configure(url=database_url, target_metadata=None, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
