"""Simulated venue producing random-walk quotes around configured prices."""

import random
import time
from typing import Any, Dict, List, Optional

from loguru import logger

from .base import BaseExchange
from ..core.errors import InvalidSymbol
from ..core.symbols import SymbolMapper
from ..core.types import Balance, OrderBook, Quote


class SimulatedExchange(BaseExchange):
    """Paper venue for exchanges without a public connector.

    Each quote is the base price shifted by a random relative offset in
    [-jitter, +jitter], with a fixed relative spread around it.
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)
        self.symbols = SymbolMapper(config.get("quote_assets") or None)
        self.base_prices = {self.symbols.to_unified(s): float(p)
                            for s, p in config.get("base_prices", {}).items()}
        self.jitter = config.get("jitter", 0.0002)
        self.spread = config.get("spread", 0.00005)
        self.balances = config.get("balances", {})
        self._rng = random.Random(config.get("seed"))

    async def connect(self, symbols: Optional[List[str]] = None) -> bool:
        for symbol in symbols or []:
            if self.symbols.to_unified(symbol) not in self.base_prices:
                logger.error(f"{self.name} (simulated) has no base price for {symbol}")
                return False
        self._connected = True
        logger.info(f"{self.name} connected (simulated, {len(self.base_prices)} symbols)")
        return True

    async def disconnect(self) -> None:
        self._connected = False

    async def load_markets(self) -> Dict[str, Any]:
        return {symbol: {"symbol": symbol, "simulated": True} for symbol in self.base_prices}

    def _mid(self, symbol: str) -> float:
        base_price = self.base_prices.get(symbol)
        if base_price is None:
            raise InvalidSymbol(f"{self.name} does not list {symbol}")
        offset = self._rng.uniform(-self.jitter, self.jitter)
        return base_price * (1 + offset)

    async def fetch_quote(self, symbol: str) -> Quote:
        unified = self.symbols.to_unified(symbol)
        mid = self._mid(unified)
        half_spread = mid * self.spread / 2
        quote = Quote(
            exchange=self.name,
            symbol=unified,
            bid=mid - half_spread,
            ask=mid + half_spread,
            timestamp=int(time.time() * 1000),
        )
        self._last_update = quote.timestamp
        return quote

    async def fetch_order_book(self, symbol: str, limit: int = 10) -> OrderBook:
        quote = await self.fetch_quote(symbol)
        tick = quote.mid_price * self.spread / 2
        return OrderBook(
            exchange=self.name,
            symbol=quote.symbol,
            bids=[(quote.bid - i * tick, 1.0) for i in range(limit)],
            asks=[(quote.ask + i * tick, 1.0) for i in range(limit)],
            timestamp=quote.timestamp,
        )

    async def fetch_balances(self) -> Dict[str, Balance]:
        ts = int(time.time() * 1000)
        return {
            asset: Balance(asset=asset, free=float(amount), locked=0.0, ts=ts)
            for asset, amount in self.balances.items()
        }

    async def fetch_time(self) -> int:
        return int(time.time() * 1000)

    async def health_check(self) -> bool:
        return self._connected
