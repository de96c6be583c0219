"""Triangle arbitrage detection and calculation.

Book-side convention for every leg moving from asset X into asset Y through
the pair BASE/QUOTE:

* Y is BASE: the leg buys BASE, consumes the ask, amount is divided by it.
* Y is QUOTE: the leg sells BASE, consumes the bid, amount is multiplied by it.

The taker fee is charged on every leg after conversion.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from loguru import logger

from .errors import InvalidQuote, InvalidSymbol
from .symbols import split_symbol
from .types import FeeModel, OpportunityKind, OpportunityResult, Quote, ensure_valid_price

BUY = "buy"
SELL = "sell"

DIRECTIONS = ("ABC", "ACB")


@dataclass(frozen=True)
class TriangleLeg:
    """One hop of a triangular path."""
    pair: str
    from_asset: str
    to_asset: str
    side: str

    @classmethod
    def between(cls, pair: str, from_asset: str, to_asset: str) -> "TriangleLeg":
        base, quote = split_symbol(pair)
        if (from_asset, to_asset) == (quote, base):
            return cls(pair, from_asset, to_asset, BUY)
        if (from_asset, to_asset) == (base, quote):
            return cls(pair, from_asset, to_asset, SELL)
        raise InvalidSymbol(f"Pair {pair} does not connect {from_asset} and {to_asset}")

    def price_from(self, quote: Quote) -> float:
        """Side of the book this leg consumes."""
        return quote.ask if self.side == BUY else quote.bid


class Triangle:
    """Represents a triangular arbitrage loop."""

    def __init__(self, asset_a: str, asset_b: str, asset_c: str,
                 pair_ab: str, pair_bc: str, pair_ca: str):
        self.asset_a = asset_a
        self.asset_b = asset_b
        self.asset_c = asset_c
        self.pair_ab = pair_ab
        self.pair_bc = pair_bc
        self.pair_ca = pair_ca

        # Trading path: A -> B -> C -> A
        self.path_abc = [pair_ab, pair_bc, pair_ca]

        # Reverse path: A -> C -> B -> A
        self.path_acb = [pair_ca, pair_bc, pair_ab]

    def __repr__(self) -> str:
        return f"Triangle({self.asset_a}->{self.asset_b}->{self.asset_c}->{self.asset_a})"

    @property
    def label(self) -> str:
        return f"{self.asset_a}-{self.asset_b}-{self.asset_c}"

    def get_pairs(self) -> List[str]:
        """Get all pairs in this triangle."""
        return [self.pair_ab, self.pair_bc, self.pair_ca]

    def get_assets(self) -> List[str]:
        """Get all assets in this triangle."""
        return [self.asset_a, self.asset_b, self.asset_c]

    def get_path(self, direction: str = "ABC") -> List[str]:
        """Assets visited, start asset repeated at the end."""
        if direction == "ABC":
            return [self.asset_a, self.asset_b, self.asset_c, self.asset_a]
        if direction == "ACB":
            return [self.asset_a, self.asset_c, self.asset_b, self.asset_a]
        raise ValueError(f"Unknown direction: {direction}")

    def legs(self, direction: str = "ABC") -> List[TriangleLeg]:
        """Legs to trade for a direction."""
        assets = self.get_path(direction)
        pairs = self.path_abc if direction == "ABC" else self.path_acb
        return [TriangleLeg.between(pair, assets[i], assets[i + 1]) for i, pair in enumerate(pairs)]

    @classmethod
    def from_pairs(cls, pairs: Sequence[str], start_asset: str) -> "Triangle":
        """Build a triangle from three unified pairs and the asset to start from."""
        if len(pairs) != 3:
            raise InvalidSymbol(f"A triangle needs 3 pairs, got {len(pairs)}")

        start_asset = start_asset.upper()
        split = {pair: split_symbol(pair) for pair in pairs}
        with_start = [pair for pair in pairs if start_asset in split[pair]]
        if len(with_start) != 2:
            raise InvalidSymbol(f"{start_asset} must appear in exactly two of {list(pairs)}")

        pair_ab, pair_ca = with_start
        pair_bc = next(pair for pair in pairs if pair not in with_start)
        asset_b = next(a for a in split[pair_ab] if a != start_asset)
        asset_c = next(a for a in split[pair_ca] if a != start_asset)

        if set(split[pair_bc]) != {asset_b, asset_c}:
            raise InvalidSymbol(f"{pair_bc} does not connect {asset_b} and {asset_c}")

        return cls(start_asset, asset_b, asset_c, pair_ab, pair_bc, pair_ca)


def find_triangles(symbols: Iterable[str],
                   start_assets: List[str],
                   exclude_assets: Optional[List[str]] = None,
                   quote_assets: Optional[Iterable[str]] = None) -> List[Triangle]:
    """Find all distinct triangles that start and end in one of start_assets."""
    exclude = set(exclude_assets or [])

    # asset -> {neighbour asset: pair}
    graph: Dict[str, Dict[str, str]] = {}
    for symbol in symbols:
        try:
            base, quote = split_symbol(symbol, quote_assets)
        except InvalidSymbol:
            logger.debug(f"Skipping unparseable symbol {symbol}")
            continue
        if base in exclude or quote in exclude:
            continue
        pair = f"{base}/{quote}"
        graph.setdefault(base, {})[quote] = pair
        graph.setdefault(quote, {})[base] = pair

    triangles = []
    seen = set()

    for asset_a in start_assets:
        for asset_b in sorted(graph.get(asset_a, {})):
            for asset_c in sorted(graph.get(asset_b, {})):
                if asset_c == asset_a or asset_a not in graph.get(asset_c, {}):
                    continue

                pair_ab = graph[asset_a][asset_b]
                pair_bc = graph[asset_b][asset_c]
                pair_ca = graph[asset_c][asset_a]

                key = frozenset((pair_ab, pair_bc, pair_ca))
                if key in seen:
                    continue
                seen.add(key)
                triangles.append(Triangle(asset_a, asset_b, asset_c, pair_ab, pair_bc, pair_ca))

    logger.info(f"Found {len(triangles)} valid triangles")
    return triangles


def calculate_triangular_yield(legs: Iterable[Tuple[float, str]], fee_rate: float) -> float:
    """Route one unit of the start asset through (price, side) legs."""
    amount = 1.0
    for i, (price, side) in enumerate(legs):
        price = ensure_valid_price(price, f"leg {i + 1} price")
        if side == BUY:
            amount = (amount / price) * (1 - fee_rate)
        elif side == SELL:
            amount = amount * price * (1 - fee_rate)
        else:
            raise ValueError(f"Unknown leg side: {side}")
    return amount


def calculate_triangle_spread(triangle: Triangle, quotes: Dict[str, Quote],
                              fee_model: FeeModel, min_profit_pct: float,
                              direction: str = "ABC") -> OpportunityResult:
    """Calculate the spread for one direction of a triangle."""
    legs = triangle.legs(direction)

    priced = []
    for leg in legs:
        quote = quotes.get(leg.pair)
        if quote is None:
            raise InvalidQuote(f"Missing quote for {leg.pair}")
        priced.append((leg, leg.price_from(quote), quote.exchange))

    prices = [(price, leg.side) for leg, price, _ in priced]
    gross_yield = calculate_triangular_yield(prices, 0.0)
    final_yield = calculate_triangular_yield(prices, fee_model.per_trade_fee_rate)

    result = OpportunityResult(
        kind=OpportunityKind.TRIANGULAR,
        gross_spread_pct=(gross_yield - 1) * 100,
        net_spread_pct=(final_yield - 1) * 100,
        threshold_pct=min_profit_pct,
        symbol=triangle.label,
        path=triangle.get_path(direction),
        details={
            'direction': direction,
            'exchange': priced[0][2],
            'final_yield': final_yield,
            'fee_rate': fee_model.per_trade_fee_rate,
            'legs': [
                {'pair': leg.pair, 'side': leg.side, 'price': price}
                for leg, price, _ in priced
            ],
        },
    )

    logger.debug(f"Path {direction} {triangle}: yield={final_yield:.8f}, "
                 f"net={result.net_spread_pct:.4f}%")
    return result


def evaluate_triangle(triangle: Triangle, quotes: Dict[str, Quote],
                      fee_model: FeeModel, min_profit_pct: float,
                      both_directions: bool = True) -> OpportunityResult:
    """Evaluate a triangle and return the better direction."""
    directions = DIRECTIONS if both_directions else DIRECTIONS[:1]
    results = [
        calculate_triangle_spread(triangle, quotes, fee_model, min_profit_pct, direction)
        for direction in directions
    ]
    return max(results, key=lambda r: r.net_spread_pct)
