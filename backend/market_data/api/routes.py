from fastapi import APIRouter, Depends, Query, Request

from market_data.schemas.quote import ErrorResponse, Quote, QuoteListResponse
from market_data.services.quotes import QuoteService

router = APIRouter()

_ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse} for status_code in (400, 404, 429, 502, 504)
}


def get_quote_service(request: Request) -> QuoteService:
    return request.app.state.quote_service


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/markets/stocks", response_model=QuoteListResponse, responses=_ERROR_RESPONSES)
async def list_stock_quotes(
    symbols: str | None = Query(default=None, description="Comma-separated tickers."),
    page: int | None = Query(default=None),
    page_size: int | None = Query(default=None),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteListResponse:
    return await service.get_quotes(symbols, page=page, page_size=page_size)


@router.get("/markets/stocks/{symbol}", response_model=Quote, responses=_ERROR_RESPONSES)
async def get_stock_quote(
    symbol: str, service: QuoteService = Depends(get_quote_service)
) -> Quote:
    return await service.get_quote(symbol)
