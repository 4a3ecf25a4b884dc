from __future__ import annotations

import datetime
import hashlib

from market_data.schemas.quote import Quote


class SyntheticQuoteSource:
    """Deterministic quotes derived from the ticker, for local runs and tests."""

    name = "synthetic"

    def __init__(self, min_price: float = 5.0, max_price: float = 1500.0) -> None:
        self.min_price = min_price
        self.max_price = max_price

    def _digest(self, symbol: str) -> int:
        return int.from_bytes(hashlib.sha256(symbol.encode("utf-8")).digest()[:8], "big")

    async def lookup(self, symbol: str) -> Quote | None:
        digest = self._digest(symbol)
        span_cents = int((self.max_price - self.min_price) * 100)
        price = round(self.min_price + (digest % span_cents) / 100, 2)
        volume = (digest >> 20) % 50_000_000
        return Quote(
            symbol=symbol,
            price=price,
            volume=volume,
            source=self.name,
            as_of=datetime.datetime.now(datetime.UTC),
        )
