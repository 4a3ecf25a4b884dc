from __future__ import annotations

from typing import Protocol

from market_data.schemas.quote import Quote


class QuoteSource(Protocol):
    """Anything that can resolve a validated ticker to a quote.

    ``lookup`` returns ``None`` when the symbol has no data and raises
    ``UpstreamError`` when the source itself fails.
    """

    name: str

    async def lookup(self, symbol: str) -> Quote | None: ...
