from __future__ import annotations

import asyncio
import json
import logging

from redis.asyncio import Redis

from market_data.schemas.quote import Quote

logger = logging.getLogger(__name__)


def create_redis_client(redis_url: str, timeout_seconds: float | None = None) -> Redis:
    return Redis.from_url(
        redis_url,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


def quote_cache_key(symbol: str) -> str:
    return f"quote:{symbol}"


class QuoteCache:
    """Read-through quote cache. Redis failures and stalls degrade to cache misses."""

    def __init__(
        self, client: Redis, ttl_seconds: int, timeout_seconds: float | None = None
    ) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds

    async def get(self, symbol: str) -> Quote | None:
        cache_key = quote_cache_key(symbol)
        try:
            raw = await asyncio.wait_for(self.client.get(cache_key), timeout=self.timeout_seconds)
        except Exception as exc:
            logger.warning("quote cache read failed key=%s error=%r", cache_key, exc)
            return None

        if not raw:
            return None

        try:
            payload = json.loads(raw)
            return Quote(**payload)
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.warning("discarding corrupt quote cache entry key=%s", cache_key)
            return None

    async def set(self, quote: Quote) -> None:
        cache_key = quote_cache_key(quote.symbol)
        try:
            await asyncio.wait_for(
                self.client.setex(cache_key, self.ttl_seconds, quote.model_dump_json()),
                timeout=self.timeout_seconds,
            )
        except Exception as exc:
            logger.warning("quote cache write failed key=%s error=%r", cache_key, exc)

    async def close(self) -> None:
        await self.client.aclose()
