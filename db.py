from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator
import logging

from sqlalchemy import event, Engine
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine

import config
# Importing the package registers every model on Base.metadata
# For more information see https://stackoverflow.com/questions/7478403/sqlalchemy-classes-across-files
from models import Base

logger = logging.getLogger(__name__)

# SQL echo stays off, statements would drown the order/payment audit logs
sql_echo = False

engine: AsyncEngine | None = None
session_maker: async_sessionmaker[AsyncSession] | None = None


def configure_engine(url: str | None = None) -> AsyncEngine:
    """
    (Re)create the global async engine and session factory.

    Called lazily on first session use with config.DB_URL; tests call it with a
    throwaway database URL.
    """
    global engine, session_maker

    url = url or config.DB_URL
    parsed_url = make_url(url)
    connect_args = {}
    if parsed_url.get_backend_name() == "sqlite":
        # Concurrent writers wait for the lock instead of failing immediately
        connect_args["timeout"] = config.DB_BUSY_TIMEOUT_SECONDS
        if parsed_url.database and parsed_url.database != ":memory:":
            Path(parsed_url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(url, echo=sql_echo, connect_args=connect_args)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    logger.debug(f"Database engine configured for backend {parsed_url.get_backend_name()}")
    return engine


def get_engine() -> AsyncEngine:
    if engine is None:
        configure_engine()
    return engine


@asynccontextmanager
async def get_db_session() -> AsyncIterator[AsyncSession]:
    if session_maker is None:
        configure_engine()
    async with session_maker() as session:
        yield session


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    # Only SQLite understands PRAGMA; other backends enforce FKs natively
    if "sqlite" not in type(dbapi_connection).__module__:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def create_db_and_tables():
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")


async def dispose_engine():
    if engine is not None:
        await engine.dispose()
