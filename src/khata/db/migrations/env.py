from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import make_url

from khata.config import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# the schema is hand-written in versions/, there is no ORM metadata to diff against
target_metadata = None


def _database_url() -> str:
    # `alembic -x db_url=...` wins over DATABASE_URL from the environment
    override = context.get_x_argument(as_dictionary=True).get("db_url")
    url = make_url(override or get_settings().database_url)
    if "+asyncpg" in url.drivername:
        url = url.set(drivername=url.drivername.replace("+asyncpg", ""))
    return url.render_as_string(hide_password=False)


def run_migrations_offline() -> None:
    context.configure(url=_database_url(), literal_binds=True)

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_database_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
