# alembic/env.py
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context
import asyncio
import os
import sys

# Add the project root to sys.path so the app package imports
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Importing the models package registers every table on Base.metadata
from app.models import Base
from app.core.config import settings


config = context.config

config.set_main_option('sqlalchemy.url', os.getenv('DATABASE_URL', settings.database_url))

# Setup logging config from ini file
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

def run_migrations_offline():
    url = config.get_main_option('sqlalchemy.url')
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={'paramstyle': 'named'}
    )
    with context.begin_transaction():
        context.run_migrations()

def do_sync_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()

async def do_async_migrations(connection):
    await connection.run_sync(do_sync_migrations)

def run_migrations_online():
    connectable = create_async_engine(
        config.get_main_option('sqlalchemy.url'),
        poolclass=pool.NullPool,
    )

    async def run_async():
        async with connectable.connect() as connection:
            await do_async_migrations(connection)
        await connectable.dispose()

    asyncio.run(run_async())

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
