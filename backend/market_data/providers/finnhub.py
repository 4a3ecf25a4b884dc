from __future__ import annotations

import asyncio
import datetime
import json
import logging
import socket
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from market_data.config.settings import ProviderSettings
from market_data.errors import UpstreamError
from market_data.schemas.quote import Quote

logger = logging.getLogger(__name__)

_QUOTE_PATH = "/api/v1/quote"


class FinnhubQuoteSource:
    name = "finnhub"

    def __init__(self, provider_settings: ProviderSettings) -> None:
        self.api_key = provider_settings.finnhub_api_key
        self.base_url = provider_settings.finnhub_base_url.rstrip("/")
        self.timeout = provider_settings.request_timeout_seconds

    def _build_url(self, path: str, params: dict[str, str]) -> str:
        return f"{self.base_url}{path}?{urlencode(params)}"

    def fetch_quote(self, symbol: str) -> Quote | None:
        if not self.api_key:
            raise UpstreamError("Finnhub API key is not configured.")

        url = self._build_url(_QUOTE_PATH, {"symbol": symbol, "token": self.api_key})
        request = Request(url)
        try:
            with urlopen(request, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
            payload = json.loads(body)
        except HTTPError as exc:
            status = "rate_limited" if exc.code == 429 else "error"
            logger.warning("finnhub quote failed symbol=%s status=%s code=%s", symbol, status, exc.code)
            raise UpstreamError(f"Quote provider returned HTTP {exc.code}.") from exc
        except (URLError, json.JSONDecodeError, TimeoutError, socket.timeout) as exc:
            logger.warning("finnhub quote failed symbol=%s error=%s", symbol, exc)
            raise UpstreamError("Quote provider request failed.") from exc

        if not isinstance(payload, dict):
            raise UpstreamError("Quote provider returned an unexpected payload.")

        # Unknown tickers come back as all-zero quotes.
        price = payload.get("c")
        ts = payload.get("t")
        if not isinstance(price, (int, float)) or (not price and not ts):
            return None

        volume = payload.get("v")
        as_of = (
            datetime.datetime.fromtimestamp(int(ts), tz=datetime.UTC)
            if isinstance(ts, (int, float)) and ts
            else datetime.datetime.now(datetime.UTC)
        )
        return Quote(
            symbol=symbol,
            price=max(float(price), 0.0),
            volume=int(volume) if isinstance(volume, (int, float)) and volume > 0 else 0,
            source=self.name,
            as_of=as_of,
        )

    async def lookup(self, symbol: str) -> Quote | None:
        return await asyncio.to_thread(self.fetch_quote, symbol)
