"""Alembic environment for the LMS schema.

Migrations always run on a synchronous engine; the async driver suffix in
DATABASE_URL is stripped before connecting.
"""

import logging
import os
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from alembic import context
from sqlalchemy import create_engine, pool

import lms.models  # noqa: F401,E402  populates Base.metadata
from lms.core.database import Base  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

ASYNC_DRIVERS = ("+asyncpg", "+aiosqlite")


def sync_database_url() -> str:
    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url") or ""
    for driver in ASYNC_DRIVERS:
        url = url.replace(driver, "")
    if not url:
        raise RuntimeError("DATABASE_URL is not set")
    return url


def run_offline(url: str) -> None:
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


database_url = sync_database_url()
logger.info(f"[MIGRATE] Target database dialect: {database_url.split(':', 1)[0]}")

if context.is_offline_mode():
    run_offline(database_url)
else:
    run_online(database_url)
