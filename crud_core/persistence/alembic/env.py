"""
Alembic environment of the CRUD core database migrations

The database URL is taken from the alembic config (set programmatically
by the ``init`` and ``auto`` commands) or, if missing, from the project
settings, so that ``alembic upgrade head`` works for configured projects.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from crud_core.persistence import models  # noqa: F401
from crud_core.persistence.database import Base
from crud_core.settings import Settings


config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _get_database_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    return Settings().database.connection


def run_migrations_offline():
    context.configure(
        url=_get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
