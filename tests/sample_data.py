"""Sample market data for testing the watcher."""

from arbwatch.config import Config
from arbwatch.core.types import Quote
from arbwatch.exchanges.base import BaseExchange

SAMPLE_TS = 1640995200000

# bid/ask per unified symbol on one venue
SAMPLE_QUOTES = {
    "ETH/USDT": {
        "bid": 2000.0,
        "ask": 2001.0,
        "bid_volume": 10.5,
        "ask_volume": 8.2
    },
    "ETH/BTC": {
        "bid": 0.05,
        "ask": 0.0501,
        "bid_volume": 100.0,
        "ask_volume": 95.0
    },
    "BTC/USDT": {
        "bid": 40000.0,
        "ask": 40001.0,
        "bid_volume": 2.5,
        "ask_volume": 2.3
    },
    "ADA/USDT": {
        "bid": 1.20,
        "ask": 1.201,
        "bid_volume": 10000.0,
        "ask_volume": 9500.0
    },
    "ADA/BTC": {
        "bid": 0.00003,
        "ask": 0.0000301,
        "bid_volume": 500000.0,
        "ask_volume": 480000.0
    }
}

SAMPLE_MARKETS = ["BTC/USDT", "ETH/USDT", "ETH/BTC", "ADA/USDT", "ADA/BTC", "BNB/USDT"]

# Documented triangle scenario: BTC/USDT 60000, ETH/BTC 0.05, ETH/USDT 3000, fee 0.1%
SCENARIO_TRIANGLE_PRICES = {
    "BTC/USDT": 60000.0,
    "ETH/BTC": 0.05,
    "ETH/USDT": 3000.0,
}

# Documented inter-exchange scenario
SCENARIO_INTER = {
    "buy_ask": 59999.50,
    "sell_bid": 60100.00,
    "fee_rate": 0.001,
    "flat_transfer_fee_usd": 5.0,
    "investment_usd": 1000.0,
}


def make_quote(symbol: str, bid: float, ask: float = None, exchange: str = "binance") -> Quote:
    """Quote with ask defaulting to bid (zero spread)."""
    return Quote(exchange=exchange, symbol=symbol, bid=bid,
                 ask=bid if ask is None else ask, timestamp=SAMPLE_TS)


def sample_quotes(exchange: str = "binance", symbols=None):
    """SAMPLE_QUOTES as Quote objects."""
    symbols = symbols or SAMPLE_QUOTES.keys()
    return {
        symbol: Quote(
            exchange=exchange,
            symbol=symbol,
            bid=SAMPLE_QUOTES[symbol]["bid"],
            ask=SAMPLE_QUOTES[symbol]["ask"],
            timestamp=SAMPLE_TS,
            bid_size=SAMPLE_QUOTES[symbol]["bid_volume"],
            ask_size=SAMPLE_QUOTES[symbol]["ask_volume"],
        )
        for symbol in symbols
    }


def scenario_triangle_quotes(exchange: str = "binance"):
    return {symbol: make_quote(symbol, price, exchange=exchange)
            for symbol, price in SCENARIO_TRIANGLE_PRICES.items()}


def simulated_config(**engine) -> Config:
    """Config where every venue is simulated and nothing touches the network."""
    return Config(
        exchanges={"left": "binance", "right": "bitbex", "simulated": ["binance", "bitbex"]},
        simulation={"seed": 7},
        engine={"interval_seconds": 0.01, **engine},
        logging={"file": None},
    )


class FakeExchange(BaseExchange):
    """In-memory venue returning fixed prices, or a configured error."""

    def __init__(self, name, prices, error=None, can_connect=True):
        super().__init__(name, {})
        self.prices = dict(prices)
        self.error = error
        self.can_connect = can_connect
        self.connect_calls = 0
        self.disconnected = False

    async def connect(self, symbols=None):
        self.connect_calls += 1
        self._connected = self.can_connect
        return self.can_connect

    async def disconnect(self):
        self._connected = False
        self.disconnected = True

    async def load_markets(self):
        return {symbol: {} for symbol in self.prices}

    async def fetch_quote(self, symbol):
        if self.error is not None:
            raise self.error
        bid, ask = self.prices[symbol]
        return make_quote(symbol, bid, ask, exchange=self.name)

    async def fetch_order_book(self, symbol, limit=10):
        raise NotImplementedError

    async def fetch_balances(self):
        return {}

    async def fetch_time(self):
        return 1640995200000

    async def health_check(self):
        return self._connected
