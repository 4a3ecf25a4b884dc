from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from market_data.db.models import QuoteRecord
from market_data.errors import UpstreamError
from market_data.schemas.quote import Quote


class DatabaseQuoteSource:
    """Serves the newest stored quote record for a symbol."""

    name = "database"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def lookup(self, symbol: str) -> Quote | None:
        stmt = (
            select(QuoteRecord)
            .where(QuoteRecord.symbol == symbol)
            .order_by(QuoteRecord.as_of.desc())
            .limit(1)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                record = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Quote database unavailable: {exc.__class__.__name__}") from exc

        if record is None:
            return None
        return Quote(
            symbol=record.symbol,
            price=record.price,
            volume=record.volume,
            source=record.source,
            as_of=record.as_of,
        )
