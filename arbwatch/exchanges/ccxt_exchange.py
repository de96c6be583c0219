"""Generic REST exchange integration through ccxt."""

import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import ccxt.async_support as ccxt
from loguru import logger

from .base import BaseExchange
from ..core.errors import ArbWatchError, AuthError, InvalidSymbol, NetworkError, UpstreamUnavailable
from ..core.retry import retry_async
from ..core.symbols import SymbolMapper
from ..core.types import Balance, OrderBook, Quote


class CcxtExchange(BaseExchange):
    """Exchange implementation backed by any ccxt exchange id.

    Config keys: ``exchange_id`` (defaults to the name), ``api_key``,
    ``secret``, ``password``, ``sandbox``, ``timeout_ms``, ``max_retries``,
    ``base_delay``, ``quote_assets``.
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)
        self.exchange_id = config.get("exchange_id", name)
        self.client: Optional[ccxt.Exchange] = None
        self.symbols = SymbolMapper(config.get("quote_assets") or None)
        self._markets_loaded = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.config.get("api_key") and self.config.get("secret"))

    def _init_client(self) -> ccxt.Exchange:
        """Initialize REST client, with keys when configured."""
        exchange_class = getattr(ccxt, self.exchange_id, None)
        if exchange_class is None:
            raise ArbWatchError(f"Exchange not supported by ccxt: {self.exchange_id}")

        params = {
            "enableRateLimit": True,
            "timeout": self.config.get("timeout_ms", 10000),
            "options": {"defaultType": "spot"},
        }
        if self.has_credentials:
            params["apiKey"] = self.config["api_key"]
            params["secret"] = self.config["secret"]
            if self.config.get("password"):
                params["password"] = self.config["password"]

        client = exchange_class(params)
        if self.config.get("sandbox", False):
            client.set_sandbox_mode(True)
        return client

    async def _request(self, description: str, method: Callable[..., Awaitable[Any]], *args) -> Any:
        """Call a ccxt method with retries, translating its errors."""
        async def attempt():
            try:
                return await method(*args)
            except ccxt.BadSymbol as e:
                raise InvalidSymbol(f"{self.name}: {e}") from e
            except ccxt.AuthenticationError as e:
                raise AuthError(f"{self.name}: {e}") from e
            except ccxt.NetworkError as e:
                raise NetworkError(f"{self.name}: {e}") from e
            except ccxt.ExchangeError as e:
                raise ArbWatchError(f"{self.name}: {e}") from e

        return await retry_async(
            attempt,
            max_retries=self.config.get("max_retries", 3),
            base_delay=self.config.get("base_delay", 0.5),
            description=f"{self.name} {description}",
        )

    def _require_client(self) -> ccxt.Exchange:
        if self.client is None:
            raise UpstreamUnavailable(f"{self.name} is not connected")
        return self.client

    def _unified(self, symbol: str) -> str:
        unified = self.symbols.to_unified(symbol)
        if self._markets_loaded and unified not in self.client.markets:
            raise InvalidSymbol(f"{self.name} does not list {unified}")
        return unified

    async def connect(self, symbols: Optional[List[str]] = None) -> bool:
        """Connect and load markets; False if the venue is not reachable.

        Unlisted symbols and rejected credentials are configuration faults and
        raise ``InvalidSymbol`` / ``AuthError`` instead. Markets are loaded
        once per client.
        """
        if self.client is None:
            self.client = self._init_client()

        try:
            if not self._markets_loaded:
                await self._request("load_markets", self.client.load_markets)
                self._markets_loaded = True

            for symbol in symbols or []:
                unified = self._unified(symbol)
                market = self.client.market(unified)
                logger.info(f"{self.name} {unified}: tickSize={market.get('precision', {}).get('price', 'N/A')}, "
                            f"minCost={market.get('limits', {}).get('cost', {}).get('min', 'N/A')}")

            self._connected = True
            logger.info(f"{self.name} connected ({len(self.client.markets)} markets loaded)")
            return True

        except (InvalidSymbol, AuthError) as e:
            logger.error(f"Cannot use {self.name}: {e}")
            self._connected = False
            raise
        except ArbWatchError as e:
            logger.error(f"Failed to connect to {self.name}: {e}")
            self._connected = False
            return False

    async def disconnect(self) -> None:
        """Close the REST client."""
        if self.client is not None:
            await self.client.close()
            self.client = None
        self._connected = False
        self._markets_loaded = False
        logger.info(f"{self.name} disconnected")

    async def load_markets(self) -> Dict[str, Any]:
        """Load exchange markets and trading rules."""
        client = self._require_client()
        markets = await self._request("load_markets", client.load_markets)
        self._markets_loaded = True
        return markets

    async def fetch_quote(self, symbol: str) -> Quote:
        """Fetch best bid/ask from the ticker endpoint."""
        client = self._require_client()
        unified = self._unified(symbol)

        ticker = await self._request(f"fetch_ticker {unified}", client.fetch_ticker, unified)
        logger.debug(f"Raw {self.name} ticker for {unified}: bid={ticker.get('bid')} ask={ticker.get('ask')}")

        quote = Quote(
            exchange=self.name,
            symbol=unified,
            bid=ticker.get('bid'),
            ask=ticker.get('ask'),
            timestamp=ticker.get('timestamp') or int(time.time() * 1000),
            bid_size=float(ticker.get('bidVolume') or 0),
            ask_size=float(ticker.get('askVolume') or 0),
        )
        self._last_update = quote.timestamp
        return quote

    async def fetch_order_book(self, symbol: str, limit: int = 10) -> OrderBook:
        """Fetch order book for a symbol."""
        client = self._require_client()
        unified = self._unified(symbol)

        order_book = await self._request(f"fetch_order_book {unified}", client.fetch_order_book, unified, limit)
        return OrderBook(
            exchange=self.name,
            symbol=unified,
            bids=[tuple(level[:2]) for level in order_book['bids'][:limit]],
            asks=[tuple(level[:2]) for level in order_book['asks'][:limit]],
            timestamp=order_book.get('timestamp') or int(time.time() * 1000),
        )

    async def fetch_balances(self) -> Dict[str, Balance]:
        """Fetch non-zero account balances."""
        client = self._require_client()
        if not self.has_credentials:
            raise AuthError(f"No API credentials configured for {self.name}")

        balances = await self._request("fetch_balance", client.fetch_balance)
        ts = int(time.time() * 1000)
        result = {}

        for asset, total in balances.get('total', {}).items():
            if total and float(total) > 0:
                result[asset] = Balance(
                    asset=asset,
                    free=float(balances.get('free', {}).get(asset) or 0),
                    locked=float(balances.get('used', {}).get(asset) or 0),
                    ts=ts,
                )

        return result

    async def fetch_time(self) -> int:
        """Fetch exchange server time."""
        client = self._require_client()
        return int(await self._request("fetch_time", client.fetch_time))

    async def health_check(self) -> bool:
        """Perform health check."""
        try:
            await self.fetch_time()
            return True
        except ArbWatchError as e:
            logger.warning(f"{self.name} health check failed: {e}")
            return False
