from __future__ import annotations

import datetime

from pydantic import BaseModel, Field


class Quote(BaseModel):
    symbol: str
    price: float = Field(ge=0)
    volume: int = Field(ge=0)
    source: str = "unknown"
    as_of: datetime.datetime | None = None


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool


class QuoteListResponse(BaseModel):
    data: list[Quote] = Field(default_factory=list)
    pagination: Pagination


class ErrorResponse(BaseModel):
    error: str
    symbols: list[str] = Field(default_factory=list)
