from __future__ import annotations

import re

from market_data.errors import SymbolValidationError

# One uppercase letter followed by up to four letters or digits.
_TICKER_RE = re.compile(r"[A-Z][A-Z0-9]{0,4}")


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def is_valid_symbol(symbol: str) -> bool:
    return symbol.isascii() and _TICKER_RE.fullmatch(symbol) is not None


def validate_symbol(symbol: str | None) -> str:
    if symbol is None or not symbol.strip():
        raise SymbolValidationError("Symbol is required.")
    # uppercasing non-ASCII can fold into a different ticker (ß -> SS)
    normalized = normalize_symbol(symbol) if symbol.isascii() else symbol.strip()
    if not is_valid_symbol(normalized):
        raise SymbolValidationError(
            f"Invalid symbol: {symbol.strip()}. Expected 1-5 uppercase letters or digits "
            "starting with a letter.",
            symbols=[symbol.strip()],
        )
    return normalized


def parse_symbol_list(raw: str | None, max_symbols: int) -> list[str]:
    """Split a comma-separated ``symbols`` parameter into validated tickers.

    Blank items are dropped; order and duplicates are kept so the response
    lines up with the request.
    """
    if raw is None or not raw.strip():
        raise SymbolValidationError("Query parameter 'symbols' is required.")

    items = [item.strip() for item in raw.split(",") if item.strip()]
    if not items:
        raise SymbolValidationError("Query parameter 'symbols' is required.")
    if len(items) > max_symbols:
        raise SymbolValidationError(
            f"Too many symbols: {len(items)} requested, at most {max_symbols} allowed."
        )

    return [validate_symbol(item) for item in items]
