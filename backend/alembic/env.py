"""
Alembic environment for the OtakuSensei schema.

The API talks to Postgres through asyncpg, but migrations run on a plain
psycopg2 connection: ``settings.sync_database_url`` strips the async driver from
``settings.database_url``. Model modules are imported so autogenerate sees
users, catalog, billing and credential tables alike.
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from otakusensei.config import settings
from otakusensei.database import Base
import otakusensei.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    # compare_type catches Numeric/String width changes on plan prices and tokens
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def run_offline(url: str) -> None:
    """Emit SQL for ``alembic upgrade --sql`` without a database."""
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})


def run_online(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _configure(connection=connection)
    finally:
        engine.dispose()


migration_url = settings.sync_database_url
config.set_main_option("sqlalchemy.url", migration_url)

if context.is_offline_mode():
    run_offline(migration_url)
else:
    run_online(migration_url)
