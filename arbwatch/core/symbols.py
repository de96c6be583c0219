"""Symbol format translation between exchange conventions.

Exchanges disagree on how a market is spelled: Binance-style REST endpoints
use ``BTCUSDT`` while the connector library works with ``BTC/USDT``. The
concatenated form is ambiguous without knowing the quote currency, so the
split is driven by an explicit table of known quote assets.
"""

from typing import Iterable, Optional, Tuple

from .errors import InvalidSymbol


# Longer codes first so "FDUSD" wins over "USD" and "USDT" over "USD".
KNOWN_QUOTE_ASSETS: Tuple[str, ...] = (
    "FDUSD",
    "USDT",
    "USDC",
    "BUSD",
    "TUSD",
    "DAI",
    "BTC",
    "ETH",
    "BNB",
    "EUR",
    "GBP",
    "TRY",
    "BRL",
    "USD",
)

SEPARATORS = ("/", "-", "_", ":")


def _ordered(quote_assets: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted({q.upper() for q in quote_assets}, key=len, reverse=True))


def split_symbol(symbol: str, quote_assets: Optional[Iterable[str]] = None) -> Tuple[str, str]:
    """Split a symbol in any supported format into (base, quote)."""
    if not symbol or not isinstance(symbol, str):
        raise InvalidSymbol(f"Invalid symbol: {symbol!r}")

    raw = symbol.strip().upper()
    for sep in SEPARATORS:
        if sep in raw:
            base, quote = raw.split(sep, 1)
            # ccxt derivatives carry a settle suffix: BTC/USDT:USDT
            quote = quote.split(":", 1)[0]
            if not base or not quote:
                raise InvalidSymbol(f"Invalid symbol: {symbol!r}")
            return base, quote

    table = _ordered(quote_assets) if quote_assets else KNOWN_QUOTE_ASSETS
    for quote in table:
        if raw.endswith(quote) and len(raw) > len(quote):
            return raw[:-len(quote)], quote

    raise InvalidSymbol(f"Unknown quote currency in symbol: {symbol!r}")


def to_unified(symbol: str, quote_assets: Optional[Iterable[str]] = None) -> str:
    """BTCUSDT, btc-usdt, BTC_USDT -> BTC/USDT."""
    base, quote = split_symbol(symbol, quote_assets)
    return f"{base}/{quote}"


def to_exchange_format(symbol: str, separator: str = "", quote_assets: Optional[Iterable[str]] = None) -> str:
    """BTC/USDT -> BTCUSDT (or BTC-USDT with separator="-")."""
    base, quote = split_symbol(symbol, quote_assets)
    return f"{base}{separator}{quote}"


class SymbolMapper:
    """Symbol translation bound to a configured quote-asset table."""

    def __init__(self, quote_assets: Optional[Iterable[str]] = None):
        self.quote_assets = _ordered(quote_assets) if quote_assets else KNOWN_QUOTE_ASSETS

    def split(self, symbol: str) -> Tuple[str, str]:
        return split_symbol(symbol, self.quote_assets)

    def to_unified(self, symbol: str) -> str:
        return to_unified(symbol, self.quote_assets)

    def to_exchange_format(self, symbol: str, separator: str = "") -> str:
        return to_exchange_format(symbol, separator, self.quote_assets)
