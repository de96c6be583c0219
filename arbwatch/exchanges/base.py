"""Base exchange interface for the arbitrage watcher."""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any

from ..core.types import Quote, OrderBook, Balance


class BaseExchange(ABC):
    """Base exchange interface.

    Implementations raise the errors of ``arbwatch.core.errors``:
    ``InvalidSymbol`` for unknown markets, ``AuthError`` for rejected
    credentials and ``NetworkError`` when the venue cannot be reached.
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        self.name = name
        self.config = config
        self._connected = False
        self._last_update = 0

    @abstractmethod
    async def connect(self, symbols: Optional[List[str]] = None) -> bool:
        """Connect to the exchange."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the exchange."""
        pass

    @abstractmethod
    async def load_markets(self) -> Dict[str, Any]:
        """Load exchange markets and trading rules."""
        pass

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> Quote:
        """Fetch best bid/ask for a symbol."""
        pass

    @abstractmethod
    async def fetch_order_book(self, symbol: str, limit: int = 10) -> OrderBook:
        """Fetch order book for a symbol."""
        pass

    @abstractmethod
    async def fetch_balances(self) -> Dict[str, Balance]:
        """Fetch account balances."""
        pass

    @abstractmethod
    async def fetch_time(self) -> int:
        """Fetch exchange server time in milliseconds."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Perform health check."""
        pass

    async def fetch_quotes(self, symbols: List[str]) -> Dict[str, Quote]:
        """Fetch quotes for several symbols concurrently.

        Fails as a whole if any symbol fails.
        """
        quotes = await asyncio.gather(*(self.fetch_quote(symbol) for symbol in symbols))
        return {quote.symbol: quote for quote in quotes}

    def is_connected(self) -> bool:
        """Check if exchange is connected."""
        return self._connected

    def get_last_update(self) -> int:
        """Get timestamp of last update."""
        return self._last_update
