#!/usr/bin/env python3
"""
Shared types and data structures for the arbitrage watcher.
This file breaks circular imports between modules.
"""

import math
import time
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum

from .errors import InvalidQuote


def now_ms() -> int:
    return int(time.time() * 1000)


def ensure_valid_price(price: Any, label: str = "price") -> float:
    """Return price as float or raise InvalidQuote if it is unusable."""
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise InvalidQuote(f"{label} is not a number: {price!r}") from None
    if not math.isfinite(value):
        raise InvalidQuote(f"{label} is not finite: {price!r}")
    if value <= 0:
        raise InvalidQuote(f"{label} must be positive, got {value}")
    return value


class OpportunityKind(Enum):
    """Kind of arbitrage being evaluated."""
    TRIANGULAR = "triangular"
    INTER_EXCHANGE = "inter_exchange"


class ArbitrageDirection(Enum):
    """Direction of an inter-exchange trade."""
    LEFT_TO_RIGHT = "left_to_right"  # Buy on left, sell on right
    RIGHT_TO_LEFT = "right_to_left"  # Buy on right, sell on left


@dataclass(frozen=True)
class Quote:
    """Best bid/ask snapshot for one symbol on one exchange."""
    exchange: str
    symbol: str
    bid: float
    ask: float
    timestamp: int = 0
    bid_size: float = 0.0
    ask_size: float = 0.0

    def __post_init__(self):
        bid = ensure_valid_price(self.bid, f"{self.exchange} {self.symbol} bid")
        ask = ensure_valid_price(self.ask, f"{self.exchange} {self.symbol} ask")
        if ask < bid:
            raise InvalidQuote(f"{self.exchange} {self.symbol} book is crossed: bid={bid} ask={ask}")
        object.__setattr__(self, "bid", bid)
        object.__setattr__(self, "ask", ask)
        if not self.timestamp:
            object.__setattr__(self, "timestamp", now_ms())

    @property
    def spread_bps(self) -> float:
        """Calculate spread in basis points."""
        return ((self.ask - self.bid) / self.bid) * 10000

    @property
    def mid_price(self) -> float:
        """Calculate mid price."""
        return (self.bid + self.ask) / 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exchange": self.exchange,
            "symbol": self.symbol,
            "bid": self.bid,
            "ask": self.ask,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FeeModel:
    """Trading and transfer costs applied to an opportunity."""
    per_trade_fee_rate: float
    flat_transfer_fee_usd: float = 0.0

    def __post_init__(self):
        if not (math.isfinite(self.per_trade_fee_rate) and 0 <= self.per_trade_fee_rate < 1):
            raise ValueError(f"per_trade_fee_rate must be in [0, 1), got {self.per_trade_fee_rate}")
        if not (math.isfinite(self.flat_transfer_fee_usd) and self.flat_transfer_fee_usd >= 0):
            raise ValueError(f"flat_transfer_fee_usd must be non-negative, got {self.flat_transfer_fee_usd}")

    @classmethod
    def from_bps(cls, taker_bps: float, flat_transfer_fee_usd: float = 0.0) -> "FeeModel":
        """Create a fee model from a taker fee in basis points."""
        return cls(per_trade_fee_rate=taker_bps / 10000, flat_transfer_fee_usd=flat_transfer_fee_usd)


@dataclass
class OpportunityResult:
    """Outcome of one evaluation. Not persisted."""
    kind: OpportunityKind
    gross_spread_pct: float
    net_spread_pct: float
    threshold_pct: float
    symbol: str

    # Inter-exchange legs
    direction: Optional[ArbitrageDirection] = None
    buy_exchange: Optional[str] = None
    sell_exchange: Optional[str] = None
    buy_price: Optional[float] = None
    sell_price: Optional[float] = None

    # Triangular path, e.g. ["USDT", "BTC", "ETH", "USDT"]
    path: List[str] = field(default_factory=list)

    timestamp: int = 0
    details: Dict[str, Any] = field(default_factory=dict)

    # Derived from net_spread_pct >= threshold_pct unless forced
    profitable: Optional[bool] = None

    def __post_init__(self):
        if self.timestamp == 0:
            self.timestamp = now_ms()
        if self.profitable is None:
            self.profitable = self.net_spread_pct >= self.threshold_pct

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable view."""
        return {
            "kind": self.kind.value,
            "symbol": self.symbol,
            "gross_spread_pct": self.gross_spread_pct,
            "net_spread_pct": self.net_spread_pct,
            "threshold_pct": self.threshold_pct,
            "profitable": self.profitable,
            "direction": self.direction.value if self.direction else None,
            "buy_exchange": self.buy_exchange,
            "sell_exchange": self.sell_exchange,
            "buy_price": self.buy_price,
            "sell_price": self.sell_price,
            "path": list(self.path),
            "timestamp": self.timestamp,
            "details": dict(self.details),
        }

    def describe(self) -> str:
        """Human-readable one-line summary."""
        if self.kind == OpportunityKind.TRIANGULAR:
            route = " -> ".join(self.path)
        else:
            route = f"buy {self.buy_exchange} @ {self.buy_price} / sell {self.sell_exchange} @ {self.sell_price}"
        verdict = "OPPORTUNITY" if self.profitable else "no opportunity"
        return (f"{self.kind.value} {self.symbol} [{route}] "
                f"gross={self.gross_spread_pct:.4f}% net={self.net_spread_pct:.4f}% "
                f"(min {self.threshold_pct}%) -> {verdict}")


@dataclass
class OrderBook:
    """Order book snapshot."""
    exchange: str
    symbol: str
    bids: List[tuple]  # (price, size)
    asks: List[tuple]  # (price, size)
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exchange": self.exchange,
            "symbol": self.symbol,
            "bids": [list(level) for level in self.bids],
            "asks": [list(level) for level in self.asks],
            "timestamp": self.timestamp,
        }


@dataclass
class Balance:
    """Account balance for one asset."""
    asset: str
    free: float
    locked: float
    ts: int

    @property
    def total(self) -> float:
        return self.free + self.locked

    def to_dict(self) -> Dict[str, float]:
        return {"free": self.free, "locked": self.locked}
