import asyncio
from unittest.mock import Mock

import pytest

from market_data.cache import QuoteCache
from market_data.errors import (
    InvalidRequestError,
    QuoteNotFoundError,
    SymbolValidationError,
    UpstreamError,
    UpstreamTimeoutError,
)
from market_data.schemas.quote import Quote
from market_data.services.quotes import QuoteService
from tests.fakes import FakeRedis


class RecordingSource:
    name = "recording"

    def __init__(self, missing: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self.missing = missing or set()

    async def lookup(self, symbol: str) -> Quote | None:
        self.calls.append(symbol)
        if symbol in self.missing:
            return None
        return Quote(symbol=symbol, price=100.0, volume=10, source=self.name)


class SlowSource:
    name = "slow"

    async def lookup(self, symbol: str) -> Quote | None:
        await asyncio.sleep(1)
        return Quote(symbol=symbol, price=1.0, volume=1)


class ExplodingSource:
    name = "exploding"

    async def lookup(self, symbol: str) -> Quote | None:
        raise RuntimeError("boom")


def test_invalid_symbol_is_rejected_before_lookup() -> None:
    source = RecordingSource()
    service = QuoteService(quote_source=source)

    with pytest.raises(SymbolValidationError):
        asyncio.run(service.get_quote("INVALID123"))

    assert source.calls == []


def test_get_quote_missing_raises_not_found() -> None:
    service = QuoteService(quote_source=RecordingSource(missing={"ZZZZ"}))

    with pytest.raises(QuoteNotFoundError) as excinfo:
        asyncio.run(service.get_quote("ZZZZ"))

    assert excinfo.value.status_code == 404


def test_lookup_timeout_maps_to_upstream_timeout() -> None:
    service = QuoteService(quote_source=SlowSource(), lookup_timeout_seconds=0.01)

    with pytest.raises(UpstreamTimeoutError) as excinfo:
        asyncio.run(service.get_quote("AAPL"))

    assert excinfo.value.status_code == 504


def test_unexpected_source_error_maps_to_upstream_error() -> None:
    service = QuoteService(quote_source=ExplodingSource())

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(service.get_quote("AAPL"))

    assert excinfo.value.status_code == 502


def test_cache_hit_skips_source() -> None:
    source = RecordingSource()
    cache = QuoteCache(FakeRedis(), ttl_seconds=30)
    service = QuoteService(quote_source=source, quote_cache=cache)

    first = asyncio.run(service.get_quote("AAPL"))
    second = asyncio.run(service.get_quote("AAPL"))

    assert source.calls == ["AAPL"]
    assert first.model_dump() == second.model_dump()


def test_get_quotes_preserves_order_and_duplicates() -> None:
    service = QuoteService(quote_source=RecordingSource())

    result = asyncio.run(service.get_quotes("MSFT,AAPL,MSFT"))

    assert [quote.symbol for quote in result.data] == ["MSFT", "AAPL", "MSFT"]
    assert result.pagination.total == 3
    assert result.pagination.total_pages == 1
    assert result.pagination.has_next is False


def test_get_quotes_reports_all_missing_symbols() -> None:
    service = QuoteService(quote_source=RecordingSource(missing={"ZZZZ", "YYYY"}))

    with pytest.raises(QuoteNotFoundError) as excinfo:
        asyncio.run(service.get_quotes("AAPL,ZZZZ,YYYY"))

    assert excinfo.value.symbols == ["ZZZZ", "YYYY"]


def test_get_quotes_only_fetches_requested_page() -> None:
    source = RecordingSource()
    service = QuoteService(quote_source=source)

    result = asyncio.run(service.get_quotes("A,B,C,D,E", page=2, page_size=2))

    assert sorted(source.calls) == ["C", "D"]
    assert [quote.symbol for quote in result.data] == ["C", "D"]
    assert result.pagination.total_pages == 3
    assert result.pagination.has_next is True


@pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (1, 51)])
def test_get_quotes_rejects_bad_pagination(page: int, page_size: int) -> None:
    service = QuoteService(quote_source=RecordingSource(), max_page_size=50)

    with pytest.raises(InvalidRequestError):
        asyncio.run(service.get_quotes("AAPL", page=page, page_size=page_size))


def test_fresh_quotes_are_enqueued_for_persistence() -> None:
    enqueuer = Mock()
    cache = QuoteCache(FakeRedis(), ttl_seconds=30)
    service = QuoteService(
        quote_source=RecordingSource(), quote_cache=cache, persist_enqueuer=enqueuer
    )

    asyncio.run(service.get_quotes("AAPL,MSFT"))
    asyncio.run(service.get_quote("AAPL"))

    assert enqueuer.call_count == 1
    persisted = enqueuer.call_args.args[0]
    assert [quote.symbol for quote in persisted] == ["AAPL", "MSFT"]


def test_enqueue_failure_does_not_fail_request() -> None:
    enqueuer = Mock(side_effect=ConnectionError("redis down"))
    service = QuoteService(quote_source=RecordingSource(), persist_enqueuer=enqueuer)

    quote = asyncio.run(service.get_quote("AAPL"))

    assert quote.symbol == "AAPL"
    enqueuer.assert_called_once()


def test_get_quotes_looks_up_duplicates_once() -> None:
    source = RecordingSource()
    enqueuer = Mock()
    service = QuoteService(quote_source=source, persist_enqueuer=enqueuer)

    result = asyncio.run(service.get_quotes("AAPL,MSFT,AAPL,AAPL"))

    assert sorted(source.calls) == ["AAPL", "MSFT"]
    assert [quote.symbol for quote in result.data] == ["AAPL", "MSFT", "AAPL", "AAPL"]
    assert result.pagination.total == 4
    persisted = enqueuer.call_args.args[0]
    assert [quote.symbol for quote in persisted] == ["AAPL", "MSFT"]


def test_get_quotes_reports_duplicate_missing_symbol_once() -> None:
    service = QuoteService(quote_source=RecordingSource(missing={"ZZZZ"}))

    with pytest.raises(QuoteNotFoundError) as excinfo:
        asyncio.run(service.get_quotes("ZZZZ,AAPL,ZZZZ"))

    assert excinfo.value.symbols == ["ZZZZ"]


def test_stalled_cache_falls_through_to_source() -> None:
    class StalledRedis:
        async def get(self, key: str) -> str | None:
            await asyncio.sleep(5)

        async def setex(self, key: str, ttl: int, value: str) -> None:
            await asyncio.sleep(5)

    source = RecordingSource()
    cache = QuoteCache(StalledRedis(), ttl_seconds=30, timeout_seconds=0.01)
    service = QuoteService(quote_source=source, quote_cache=cache)

    quote = asyncio.run(asyncio.wait_for(service.get_quote("AAPL"), timeout=2))

    assert quote.symbol == "AAPL"
    assert source.calls == ["AAPL"]
