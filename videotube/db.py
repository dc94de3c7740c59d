import argparse
import asyncio
from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from videotube import models  # noqa: F401
from videotube.config import Settings, settings
from videotube.models.base import Base
from videotube.utils.logger import setup_logger

logger = setup_logger("db")


def normalize_database_url(database_url: str | None) -> str:
    """Return an async driver URL, rewriting plain postgresql:// to asyncpg."""
    if not database_url:
        raise ValueError("DATABASE_URL environment variable not set")

    if database_url.startswith("postgresql+asyncpg://"):
        return database_url
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite+aiosqlite://"):
        return database_url
    raise ValueError(f"Unsupported DATABASE_URL prefix: {database_url}")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_settings(app_settings: Settings) -> AsyncEngine:
    url = normalize_database_url(app_settings.database_url)
    logger.debug(f"Application DB driver: {url.split('://', 1)[0]}")

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=app_settings.db_echo)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=60,
        pool_recycle=300,
        echo=app_settings.db_echo,
        connect_args={"timeout": 30},
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# --- Dependency for FastAPI ---
async def get_app_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    if not Base.metadata.tables:
        logger.warning("Base.metadata.tables is EMPTY! No tables will be created.")
    else:
        logger.debug(f"Tables registered: {list(Base.metadata.tables.keys())}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized.")


async def reset_db(engine: AsyncEngine) -> None:
    logger.warning(
        "Attempting to reset the application database. THIS IS A DESTRUCTIVE OPERATION."
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("All application tables dropped.")
    await init_db(engine)


async def check_db_connection(engine: AsyncEngine, db_name: str = "Application DB"):
    """Performs a simple query to check actual DB connectivity."""
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        try:
            result = await session.execute(text("SELECT 1"))
            if result.scalar_one() != 1:
                raise RuntimeError(
                    f"Test query to {db_name} returned an unexpected result."
                )
            logger.info(f"Successfully connected to {db_name} and executed a test query.")
            return True
        except Exception as e:
            logger.error(f"Failed to execute test query on {db_name}: {e}", exc_info=True)
            raise RuntimeError(f"Database connectivity check failed for {db_name}.") from e


async def _run_action(action: str) -> None:
    engine = create_engine_from_settings(settings)
    try:
        if action == "init":
            await init_db(engine)
        elif action == "reset":
            await reset_db(engine)
        elif action == "check":
            await check_db_connection(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Application database initialization utility"
    )
    parser.add_argument(
        "action",
        choices=["init", "reset", "check"],
        help="'init' to create missing tables, "
        "'reset' to drop and recreate all tables, "
        "'check' to verify database connectivity.",
    )
    args = parser.parse_args()

    if args.action == "reset":
        confirm = input(
            "WARNING: This will delete all application data. Are you sure? (yes/no): "
        )
        if confirm.lower() != "yes":
            logger.info("Application database reset cancelled by user.")
            raise SystemExit(0)

    asyncio.run(_run_action(args.action))
    logger.info("Application database utility script finished.")
