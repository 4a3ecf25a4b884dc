# backend/market_data/db/session.py

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine_and_sessionmaker(
    database_url: str,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Build the engine and session factory owned by the app lifespan or a worker."""
    engine = create_async_engine(database_url, echo=False)
    session_factory = async_sessionmaker(autoflush=False, bind=engine)
    return engine, session_factory
