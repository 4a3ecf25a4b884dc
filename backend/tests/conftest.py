from __future__ import annotations

from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from market_data.config.settings import RateLimitSettings, Settings
from market_data.main import create_app
from market_data.providers.synthetic import SyntheticQuoteSource


def build_settings(**overrides) -> Settings:
    values = {
        "cache_enabled": False,
        "persist_quotes": False,
        "quote_source": "synthetic",
        "rate_limit": RateLimitSettings(enabled=True, max_requests=1000, window_seconds=60),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_client():
    with ExitStack() as stack:

        def _make(quote_source=None, quote_cache=None, **overrides) -> TestClient:
            app = create_app(
                build_settings(**overrides),
                quote_source=quote_source or SyntheticQuoteSource(),
                quote_cache=quote_cache,
            )
            return stack.enter_context(TestClient(app))

        yield _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
