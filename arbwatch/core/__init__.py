"""Core spread calculation for the arbitrage watcher."""

from .errors import ArbWatchError, InvalidQuote, InvalidSymbol, AuthError, UpstreamUnavailable, NetworkError
from .types import Quote, FeeModel, OpportunityKind, OpportunityResult, ArbitrageDirection, Balance, OrderBook
from .symbols import SymbolMapper, split_symbol, to_unified, to_exchange_format
from .triangle import Triangle, find_triangles, calculate_triangular_yield, calculate_triangle_spread, evaluate_triangle
from .detector import ArbitrageDetector, calculate_inter_exchange_spread
from .retry import retry_async

__all__ = [
    'ArbWatchError',
    'InvalidQuote',
    'InvalidSymbol',
    'AuthError',
    'UpstreamUnavailable',
    'NetworkError',
    'Quote',
    'FeeModel',
    'OpportunityKind',
    'OpportunityResult',
    'ArbitrageDirection',
    'Balance',
    'OrderBook',
    'SymbolMapper',
    'split_symbol',
    'to_unified',
    'to_exchange_format',
    'Triangle',
    'find_triangles',
    'calculate_triangular_yield',
    'calculate_triangle_spread',
    'evaluate_triangle',
    'ArbitrageDetector',
    'calculate_inter_exchange_spread',
    'retry_async',
]
