from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from market_data.api.routes import router
from market_data.cache import QuoteCache, create_redis_client
from market_data.config.settings import Settings, settings as default_settings
from market_data.db.session import create_engine_and_sessionmaker
from market_data.errors import MarketDataError
from market_data.jobs.queue import enqueue_persist_quotes, get_queue
from market_data.logging_config import configure_logging
from market_data.middleware import (
    FixedWindowRateLimiter,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from market_data.providers.base import QuoteSource
from market_data.providers.selector import build_quote_source
from market_data.services.quotes import QuoteService

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


async def _market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request parameters: " + ", ".join(fields)},
    )


def create_app(
    settings: Settings | None = None,
    *,
    quote_source: QuoteSource | None = None,
    quote_cache: QuoteCache | None = None,
) -> FastAPI:
    """Build the service. Injected handles are used as-is and not closed on shutdown."""
    app_settings = settings or default_settings
    configure_logging(app_settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        session_factory = None
        if quote_source is None and app_settings.quote_source == "database":
            engine, session_factory = create_engine_and_sessionmaker(app_settings.database_url)
        source = quote_source or build_quote_source(app_settings, session_factory)

        cache = quote_cache
        owns_cache = False
        if cache is None and app_settings.cache_enabled:
            cache = QuoteCache(
                create_redis_client(
                    app_settings.redis_url, timeout_seconds=app_settings.cache_timeout_seconds
                ),
                ttl_seconds=app_settings.quote_cache_ttl_seconds,
                timeout_seconds=app_settings.cache_timeout_seconds,
            )
            owns_cache = True

        persist_enqueuer = None
        if app_settings.persist_quotes and source.name != "database":
            queue = get_queue(app_settings.redis_url, app_settings.persist_queue_name)
            persist_enqueuer = partial(enqueue_persist_quotes, queue)

        app.state.quote_service = QuoteService(
            quote_source=source,
            quote_cache=cache,
            persist_enqueuer=persist_enqueuer,
            lookup_timeout_seconds=app_settings.lookup_timeout_seconds,
            max_symbols_per_request=app_settings.max_symbols_per_request,
            default_page_size=app_settings.default_page_size,
            max_page_size=app_settings.max_page_size,
        )
        logger.info(
            "market data service started source=%s cache=%s persist=%s",
            source.name,
            cache is not None,
            persist_enqueuer is not None,
        )

        try:
            yield
        finally:
            if owns_cache and cache is not None:
                await cache.close()
            if engine is not None:
                await engine.dispose()
            logger.info("market data service stopped")

    app = FastAPI(title="Market Data Service", version="0.1.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.include_router(router, prefix=API_PREFIX)

    app.add_exception_handler(MarketDataError, _market_data_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    # Starlette wraps in reverse order: the last added middleware runs first.
    if app_settings.rate_limit.enabled:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=FixedWindowRateLimiter(
                max_requests=app_settings.rate_limit.max_requests,
                window_seconds=app_settings.rate_limit.window_seconds,
            ),
            exempt_paths=(f"{API_PREFIX}/health",),
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    return app


app = create_app()
