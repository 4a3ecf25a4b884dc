from __future__ import annotations

import asyncio
import datetime
import logging

from market_data.config.settings import settings
from market_data.db.models import QuoteRecord
from market_data.db.session import create_engine_and_sessionmaker
from market_data.schemas.quote import Quote

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime.datetime | None) -> datetime.datetime:
    if value is None:
        return datetime.datetime.utcnow()
    if value.tzinfo is None:
        return value
    return value.astimezone(datetime.UTC).replace(tzinfo=None)


async def _store_quotes(quotes: list[dict]) -> int:
    engine, session_factory = create_engine_and_sessionmaker(settings.database_url)
    try:
        async with session_factory() as session:
            for raw in quotes:
                quote = Quote(**raw)
                session.add(
                    QuoteRecord(
                        symbol=quote.symbol,
                        price=quote.price,
                        volume=quote.volume,
                        source=quote.source,
                        as_of=_to_naive_utc(quote.as_of),
                    )
                )
            await session.commit()
    finally:
        await engine.dispose()

    logger.info("persisted %d quote records", len(quotes))
    return len(quotes)


def run_persist_quotes(quotes: list[dict]) -> int:
    return asyncio.run(_store_quotes(quotes))
