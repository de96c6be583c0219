"""Exchange integrations for the arbitrage watcher."""

from .base import BaseExchange
from .ccxt_exchange import CcxtExchange
from .simulated import SimulatedExchange
from .factory import ExchangeFactory

__all__ = [
    'BaseExchange',
    'CcxtExchange',
    'SimulatedExchange',
    'ExchangeFactory',
]
