from logging.config import fileConfig
import os, sys

# 'alembic upgrade head' is run from the project root
sys.path.append(os.getcwd())

from alembic import context
from sqlalchemy import create_engine, pool

from inkgest.core.config import settings
from inkgest.db.session import Base
import inkgest.db.base  # registers every studio model on Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DB_URL = settings.sync_db_uri
config.set_main_option("sqlalchemy.url", DB_URL)

MIGRATION_OPTIONS = dict(
    target_metadata=Base.metadata,
    compare_type=True,
    render_as_batch=DB_URL.startswith("sqlite"),
)


def run_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    context.configure(url=DB_URL, literal_binds=True, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(DB_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
