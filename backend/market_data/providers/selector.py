from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from market_data.config.settings import Settings
from market_data.providers.base import QuoteSource
from market_data.providers.database import DatabaseQuoteSource
from market_data.providers.finnhub import FinnhubQuoteSource
from market_data.providers.synthetic import SyntheticQuoteSource


def build_quote_source(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> QuoteSource:
    if settings.quote_source == "database":
        if session_factory is None:
            raise ValueError("quote_source 'database' requires a session factory.")
        return DatabaseQuoteSource(session_factory)
    if settings.quote_source == "finnhub":
        return FinnhubQuoteSource(settings.providers)
    return SyntheticQuoteSource()
