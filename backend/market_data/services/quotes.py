from __future__ import annotations

import asyncio
import logging
import math
from typing import Callable

from market_data.cache import QuoteCache
from market_data.errors import (
    InvalidRequestError,
    MarketDataError,
    QuoteNotFoundError,
    UpstreamError,
    UpstreamTimeoutError,
)
from market_data.providers.base import QuoteSource
from market_data.schemas.quote import Pagination, Quote, QuoteListResponse
from market_data.validation.symbols import parse_symbol_list, validate_symbol

logger = logging.getLogger(__name__)


class QuoteService:
    """Cache-first quote lookups over an injected quote source."""

    def __init__(
        self,
        *,
        quote_source: QuoteSource,
        quote_cache: QuoteCache | None = None,
        persist_enqueuer: Callable[[list[Quote]], object] | None = None,
        lookup_timeout_seconds: float = 5.0,
        max_symbols_per_request: int = 50,
        default_page_size: int = 50,
        max_page_size: int = 50,
    ) -> None:
        self.quote_source = quote_source
        self.quote_cache = quote_cache
        self.persist_enqueuer = persist_enqueuer
        self.lookup_timeout_seconds = lookup_timeout_seconds
        self.max_symbols_per_request = max_symbols_per_request
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def _fetch_from_source(self, symbol: str) -> Quote | None:
        try:
            return await asyncio.wait_for(
                self.quote_source.lookup(symbol), timeout=self.lookup_timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamTimeoutError(
                f"Quote lookup timed out for {symbol}.", symbols=[symbol]
            ) from exc
        except MarketDataError:
            raise
        except Exception as exc:
            raise UpstreamError(
                f"Quote lookup failed for {symbol}.", symbols=[symbol]
            ) from exc

    async def _resolve(self, symbol: str) -> tuple[Quote | None, bool]:
        """Return the quote and whether it came from the source rather than the cache."""
        if self.quote_cache is not None:
            cached = await self.quote_cache.get(symbol)
            if cached is not None:
                return cached, False

        quote = await self._fetch_from_source(symbol)
        if quote is None:
            return None, False
        if self.quote_cache is not None:
            await self.quote_cache.set(quote)
        return quote, True

    async def _persist(self, quotes: list[Quote]) -> None:
        if self.persist_enqueuer is None or not quotes:
            return
        try:
            await asyncio.to_thread(self.persist_enqueuer, quotes)
        except Exception as exc:
            logger.warning("failed to enqueue quote persistence count=%d error=%s", len(quotes), exc)

    async def get_quote(self, raw_symbol: str | None) -> Quote:
        symbol = validate_symbol(raw_symbol)
        quote, fresh = await self._resolve(symbol)
        if quote is None:
            raise QuoteNotFoundError(f"No quote available for {symbol}.", symbols=[symbol])
        if fresh:
            await self._persist([quote])
        return quote

    def _page_bounds(self, page: int | None, page_size: int | None) -> tuple[int, int]:
        page = 1 if page is None else page
        page_size = self.default_page_size if page_size is None else page_size
        if page < 1:
            raise InvalidRequestError("Query parameter 'page' must be at least 1.")
        if page_size < 1 or page_size > self.max_page_size:
            raise InvalidRequestError(
                f"Query parameter 'page_size' must be between 1 and {self.max_page_size}."
            )
        return page, page_size

    async def get_quotes(
        self,
        raw_symbols: str | None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> QuoteListResponse:
        symbols = parse_symbol_list(raw_symbols, self.max_symbols_per_request)
        page, page_size = self._page_bounds(page, page_size)

        total = len(symbols)
        total_pages = max(1, math.ceil(total / page_size))
        start = (page - 1) * page_size
        page_symbols = symbols[start : start + page_size]

        # one lookup per distinct symbol; duplicates share the result
        unique_symbols = list(dict.fromkeys(page_symbols))
        resolved = dict(
            zip(
                unique_symbols,
                await asyncio.gather(*(self._resolve(symbol) for symbol in unique_symbols)),
            )
        )

        missing = [symbol for symbol in unique_symbols if resolved[symbol][0] is None]
        if missing:
            raise QuoteNotFoundError(
                "No quote available for: " + ", ".join(missing), symbols=missing
            )

        data = [resolved[symbol][0] for symbol in page_symbols]
        fresh = [quote for quote, is_fresh in resolved.values() if is_fresh]
        await self._persist(fresh)

        logger.info(
            "batch_resolve requested=%d page=%d page_size=%d returned=%d source_hits=%d",
            total,
            page,
            page_size,
            len(data),
            len(fresh),
        )

        return QuoteListResponse(
            data=data,
            pagination=Pagination(
                page=page,
                page_size=page_size,
                total=total,
                total_pages=total_pages,
                has_next=page < total_pages,
            ),
        )
